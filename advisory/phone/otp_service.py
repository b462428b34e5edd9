"""
Phone OTP Session Manager

Issue:  directory check -> gateway configured -> resend cooldown -> send code
Verify: session live -> attempts left -> gateway match -> mark phone verified

The gateway owns the codes; this service only tracks when a code was sent,
when it expires and how many wrong guesses were made against it.
"""

import logging
import math
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from advisory.config import settings
from advisory.phone.session_store import OTPSession, SessionStore, SessionStoreError, build_session_store
from advisory.shared.database import DatabaseService, database_service
from advisory.sms.service import SMSGatewayError, TwoFactorSMSService, mask_phone, sms_service

logger = logging.getLogger(__name__)

PHONE_REGEX = re.compile(r"[0-9]{10}")
OTP_REGEX = re.compile(r"[0-9]{4}")


class OTPError(str, Enum):
    INVALID_INPUT = "invalid_input"
    ALREADY_VERIFIED = "already_verified"
    TOO_MANY_REQUESTS = "too_many_requests"
    GATEWAY_UNAVAILABLE = "gateway_unavailable"
    GATEWAY_ERROR = "gateway_error"
    STORE_UNAVAILABLE = "store_unavailable"
    EXPIRED = "expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    INVALID_CODE = "invalid_code"
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    OTPError.INVALID_INPUT: 400,
    OTPError.ALREADY_VERIFIED: 409,
    OTPError.TOO_MANY_REQUESTS: 429,
    OTPError.GATEWAY_UNAVAILABLE: 500,
    OTPError.GATEWAY_ERROR: 500,
    OTPError.STORE_UNAVAILABLE: 500,
    OTPError.EXPIRED: 400,
    OTPError.TOO_MANY_ATTEMPTS: 400,
    OTPError.INVALID_CODE: 400,
    OTPError.UNAUTHENTICATED: 401,
    OTPError.NOT_FOUND: 404,
}


@dataclass
class OTPResult:
    success: bool
    message: str
    error: Optional[OTPError] = None
    wait_seconds: Optional[int] = None
    attempts_left: Optional[int] = None
    verified: bool = False
    user: Optional[Dict[str, Any]] = None

    @classmethod
    def fail(cls, error: OTPError, message: str, **extra) -> "OTPResult":
        return cls(success=False, message=message, error=error, **extra)

    @property
    def status_code(self) -> int:
        return self.error.status_code if self.error else 200


def _store_unavailable() -> OTPResult:
    return OTPResult.fail(
        OTPError.STORE_UNAVAILABLE,
        "OTP service temporarily unavailable. Please try again later."
    )


class OTPSessionManager:
    def __init__(
        self,
        store: SessionStore,
        gateway: TwoFactorSMSService,
        directory: DatabaseService,
        cooldown_seconds: int = 60,
        ttl_seconds: int = 600,
        max_attempts: int = 3,
        country_code: str = "91",
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.gateway = gateway
        self.directory = directory
        self.cooldown_seconds = cooldown_seconds
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self.country_code = country_code
        self.clock = clock

    def key_for_phone(self, phone: str) -> str:
        return f"{self.country_code}{phone}"

    # ---------------------------------------------------------
    # Issue
    # ---------------------------------------------------------
    async def issue(self, phone: Optional[str]) -> OTPResult:
        if not phone:
            return OTPResult.fail(OTPError.INVALID_INPUT, "Phone number is required")

        if not PHONE_REGEX.fullmatch(phone):
            return OTPResult.fail(
                OTPError.INVALID_INPUT,
                "Invalid phone number format. Please enter 10 digits."
            )

        if self.directory.is_phone_verified(phone):
            return OTPResult.fail(
                OTPError.ALREADY_VERIFIED,
                "This phone number is already registered and verified."
            )

        if not self.gateway.is_configured:
            logger.error("OTP requested but SMS gateway is not configured")
            return OTPResult.fail(
                OTPError.GATEWAY_UNAVAILABLE,
                "OTP service not configured. Please contact administrator."
            )

        key = self.key_for_phone(phone)

        try:
            async with self.store.lock(key):
                result = await self._send_code(key)
        except SessionStoreError as e:
            logger.error(f"OTP session store failed during issue for {mask_phone(key)}: {e}")
            return _store_unavailable()

        if result.success:
            logger.info(f"OTP issued for {mask_phone(key)}")
        return result

    async def _send_code(self, key: str) -> OTPResult:
        now = self.clock()

        existing = await self.store.get(key)
        if existing and now - existing.last_sent_at < self.cooldown_seconds:
            wait = math.ceil(self.cooldown_seconds - (now - existing.last_sent_at))
            return OTPResult.fail(
                OTPError.TOO_MANY_REQUESTS,
                f"Please wait {wait}s before requesting another OTP.",
                wait_seconds=wait
            )

        try:
            sent = await self.gateway.send_code(key)
        except SMSGatewayError as e:
            logger.error(f"OTP send failed for {mask_phone(key)}: {e}")
            return OTPResult.fail(
                OTPError.GATEWAY_ERROR,
                "Failed to send OTP. Please try again later."
            )

        if not sent.success:
            return OTPResult.fail(
                OTPError.GATEWAY_ERROR,
                "Failed to send OTP. Please try again."
            )

        await self.store.put(OTPSession(
            key=key,
            last_sent_at=now,
            otp_expires_at=now + self.ttl_seconds,
            attempts=0,
        ))
        return OTPResult(success=True, message="OTP sent successfully")

    # ---------------------------------------------------------
    # Verify
    # ---------------------------------------------------------
    async def verify(self, phone: Optional[str], code: Optional[str], user_id: Optional[str] = None) -> OTPResult:
        if not phone or not code:
            return OTPResult.fail(OTPError.INVALID_INPUT, "Phone number and OTP are required")

        if not PHONE_REGEX.fullmatch(phone):
            return OTPResult.fail(
                OTPError.INVALID_INPUT,
                "Invalid phone number format. Please enter 10 digits."
            )

        if not OTP_REGEX.fullmatch(code):
            return OTPResult.fail(OTPError.INVALID_INPUT, "Invalid OTP format. Please enter 4 digits.")

        key = self.key_for_phone(phone)

        try:
            async with self.store.lock(key):
                failure = await self._check_code(key, code)
        except SessionStoreError as e:
            logger.error(f"OTP session store failed during verify for {mask_phone(key)}: {e}")
            return _store_unavailable()

        if failure:
            return failure

        logger.info(f"OTP verification successful for {mask_phone(key)}")

        if user_id:
            user = self.directory.mark_phone_verified(user_id, phone)
            if user:
                return OTPResult(
                    success=True,
                    message="Phone number verified successfully",
                    verified=True,
                    user={
                        "phone": user.get("phone", phone),
                        "phoneVerified": bool(user.get("phone_verified", True)),
                    }
                )
            logger.error(f"OTP verified but directory update failed for user {user_id}")

        return OTPResult(success=True, message="OTP verified successfully", verified=True)

    async def _check_code(self, key: str, code: str) -> Optional[OTPResult]:
        """Returns the failure result, or None once the code matched and the session is gone"""
        now = self.clock()
        session = await self.store.get(key)

        if not session or session.is_expired(now):
            await self.store.delete(key)
            return OTPResult.fail(OTPError.EXPIRED, "OTP expired. Please request a new OTP.")

        if session.attempts >= self.max_attempts:
            await self.store.delete(key)
            return OTPResult.fail(
                OTPError.TOO_MANY_ATTEMPTS,
                "Too many failed attempts. Please request a new OTP."
            )

        try:
            matched = (await self.gateway.verify_code(key, code)).success
        except SMSGatewayError as e:
            logger.error(f"OTP verify call failed for {mask_phone(key)}: {e}")
            matched = False

        if not matched:
            session.attempts += 1
            if session.attempts >= self.max_attempts:
                await self.store.delete(key)
            else:
                await self.store.put(session)

            return OTPResult.fail(
                OTPError.INVALID_CODE,
                "Invalid OTP. Please try again.",
                attempts_left=max(0, self.max_attempts - session.attempts)
            )

        await self.store.delete(key)
        return None

    # ---------------------------------------------------------
    # Status
    # ---------------------------------------------------------
    def status(self, user_id: Optional[str]) -> OTPResult:
        if not user_id:
            return OTPResult.fail(OTPError.UNAUTHENTICATED, "Authentication required")

        user = self.directory.get_user_by_id(user_id)
        if not user:
            return OTPResult.fail(OTPError.NOT_FOUND, "User not found")

        return OTPResult(
            success=True,
            message="Phone status retrieved",
            verified=bool(user.get("phone_verified")),
            user={
                "phone": user.get("phone"),
                "phoneVerified": bool(user.get("phone_verified")),
            }
        )


otp_session_manager = OTPSessionManager(
    store=build_session_store(settings),
    gateway=sms_service,
    directory=database_service,
    cooldown_seconds=settings.otp_resend_delay_seconds,
    ttl_seconds=settings.otp_expiry_minutes * 60,
    max_attempts=settings.otp_max_attempts,
    country_code=settings.otp_country_code,
)


def get_otp_manager() -> OTPSessionManager:
    return otp_session_manager
