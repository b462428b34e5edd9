"""
SMS Gateway Service (2Factor)

2Factor generates, delivers and checks the codes itself; this service only
asks it to send one to a number and later asks whether a submitted code
matches. Codes never pass through here on the way out.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from advisory.config import settings

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your_2factor_api_key_here"


class SMSGatewayError(Exception):
    """Raised when the gateway cannot be reached or does not answer in time"""


@dataclass
class GatewayResult:
    success: bool
    details: Optional[str] = None


def mask_phone(phone: str) -> str:
    if len(phone) <= 4:
        return "*" * len(phone)
    return phone[:2] + "*" * (len(phone) - 6) + phone[-4:]


class TwoFactorSMSService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        otp_template: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.twofactor_api_key
        self.base_url = (base_url or settings.twofactor_base_url).rstrip("/")
        self.otp_template = otp_template or settings.twofactor_otp_template
        self.timeout = timeout if timeout is not None else settings.sms_gateway_timeout_seconds
        self._transport = transport

        if not self.is_configured:
            logger.warning("2Factor API key missing, OTP delivery disabled")
        else:
            logger.info("SMS gateway initialized")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    # ---------------------------------------------------------
    # Gateway Operations
    # ---------------------------------------------------------
    async def send_code(self, phone_key: str) -> GatewayResult:
        path = f"/SMS/{quote(phone_key)}/AUTOGEN3/{quote(self.otp_template)}"
        logger.info(f"Requesting OTP for {mask_phone(phone_key)}")

        result = await self._call(path)
        if not result.success:
            logger.error(f"OTP send rejected for {mask_phone(phone_key)}: {result.details}")
        return result

    async def verify_code(self, phone_key: str, code: str) -> GatewayResult:
        path = f"/SMS/VERIFY3/{quote(phone_key)}/{quote(code)}"
        logger.info(f"Verifying OTP for {mask_phone(phone_key)}")

        result = await self._call(path)
        if not result.success:
            logger.warning(f"OTP rejected for {mask_phone(phone_key)}: {result.details}")
        return result

    # ---------------------------------------------------------
    # HTTP + Response Decoding
    # ---------------------------------------------------------
    async def _call(self, path: str) -> GatewayResult:
        # api key is part of the path, keep it out of logs and error messages
        url = f"{self.base_url}/{quote(self.api_key or '')}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.TimeoutException:
            raise SMSGatewayError("SMS gateway timed out")
        except httpx.RequestError as e:
            raise SMSGatewayError(f"Network error: {type(e).__name__}")

        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> GatewayResult:
        try:
            payload: Dict[str, Any] = response.json()
        except ValueError:
            return GatewayResult(success=False, details=f"Unexpected response (HTTP {response.status_code})")

        if not isinstance(payload, dict):
            return GatewayResult(success=False, details="Unexpected response body")

        details = payload.get("Details")
        details = str(details) if details is not None else None

        if response.is_success and payload.get("Status") == "Success":
            return GatewayResult(success=True, details=details)

        return GatewayResult(success=False, details=details or f"HTTP {response.status_code}")

    # ---------------------------------------------------------
    # Connection Test
    # ---------------------------------------------------------
    def test_connection(self) -> Dict[str, Any]:
        if not self.is_configured:
            return {"success": False, "error": "SMS gateway not configured", "initialized": False}

        return {"success": True, "initialized": True, "base_url": self.base_url}


sms_service = TwoFactorSMSService()
