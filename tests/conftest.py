"""
Pytest configuration and fixtures for the phone verification service.

Settings are read at import time, so the required environment is seeded
before any `advisory` module is imported.
"""
import os

os.environ.setdefault("SUPABASE_URL", "https://directory.test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE", "service-test-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("OTP_SESSION_BACKEND", "memory")

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from advisory.phone.otp_service import OTPSessionManager
from advisory.phone.session_store import InMemorySessionStore
from advisory.sms.service import GatewayResult, SMSGatewayError

T0 = 1_700_000_000.0


class FakeClock:
    def __init__(self, start: float = T0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """Stands in for 2Factor: accepts `valid_code`, rejects anything else"""

    def __init__(self):
        self.is_configured = True
        self.valid_code = "1234"
        self.send_status = True
        self.send_raises: Optional[Exception] = None
        self.verify_raises: Optional[Exception] = None
        self.sent: List[str] = []
        self.checked: List[tuple] = []

    async def send_code(self, phone_key: str) -> GatewayResult:
        self.sent.append(phone_key)
        if self.send_raises:
            raise self.send_raises
        if not self.send_status:
            return GatewayResult(success=False, details="Invalid Phone Number")
        return GatewayResult(success=True, details="session-id")

    async def verify_code(self, phone_key: str, code: str) -> GatewayResult:
        self.checked.append((phone_key, code))
        # let concurrent callers interleave here
        await asyncio.sleep(0)
        if self.verify_raises:
            raise self.verify_raises
        if code == self.valid_code:
            return GatewayResult(success=True, details="OTP Matched")
        return GatewayResult(success=False, details="OTP Mismatch")


class FakeDirectory:
    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.fail_updates = False
        self.phone_lookups: List[str] = []
        self.updates: List[tuple] = []

    def add_user(self, user_id: str, phone: Optional[str] = None, phone_verified: bool = False):
        self.users[user_id] = {"id": user_id, "phone": phone, "phone_verified": phone_verified}
        return self.users[user_id]

    def get_user_by_id(self, user_id: str):
        return self.users.get(user_id)

    def is_phone_verified(self, phone: str) -> bool:
        self.phone_lookups.append(phone)
        return any(u["phone"] == phone and u["phone_verified"] for u in self.users.values())

    def mark_phone_verified(self, user_id: str, phone: str):
        self.updates.append((user_id, phone))
        if self.fail_updates or user_id not in self.users:
            return None
        self.users[user_id].update({"phone": phone, "phone_verified": True})
        return dict(self.users[user_id])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def store(clock):
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def manager(store, gateway, directory, clock):
    return OTPSessionManager(
        store=store,
        gateway=gateway,
        directory=directory,
        cooldown_seconds=60,
        ttl_seconds=600,
        max_attempts=3,
        country_code="91",
        clock=clock,
    )


@pytest.fixture
def gateway_down():
    return SMSGatewayError("SMS gateway timed out")
