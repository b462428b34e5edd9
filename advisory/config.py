"""
Configuration Settings for the Advisory Phone Verification Service
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Application
    app_name: str = "Advisory Phone Verification"
    debug: bool = False
    enable_docs: bool = True

    # Supabase (user directory)
    supabase_url: str
    supabase_service_role: str
    supabase_timeout_seconds: float = 10.0

    # Authentication
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_hours: int = 24

    # SMS Gateway (2Factor)
    twofactor_api_key: Optional[str] = None
    twofactor_base_url: str = "https://2factor.in/API/V1"
    twofactor_otp_template: str = "OTP1"
    sms_gateway_timeout_seconds: float = 10.0

    # OTP policy
    otp_country_code: str = "91"
    otp_expiry_minutes: int = 10
    otp_max_attempts: int = 3
    otp_resend_delay_seconds: int = 60

    # OTP session storage: "memory" or "redis"
    otp_session_backend: str = "memory"
    redis_url: Optional[str] = None
    redis_lock_timeout_seconds: float = 30.0

    class Config:
        env_file = ".env"


settings = Settings()
