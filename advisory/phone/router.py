"""
Phone Verification Router
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from advisory.phone.otp_service import OTPResult, OTPSessionManager, get_otp_manager
from advisory.phone.schemas import SendOTPRequest, VerifyOTPRequest
from advisory.shared.auth import get_optional_user_id

logger = logging.getLogger(__name__)
router = APIRouter(tags=["phone"])


def _error_response(result: OTPResult) -> JSONResponse:
    content = {"success": False, "error": result.message}

    if result.wait_seconds is not None:
        content["waitSeconds"] = result.wait_seconds
    if result.attempts_left is not None:
        content["attemptsLeft"] = result.attempts_left

    return JSONResponse(status_code=result.status_code, content=content)


# ---------------------------------------------------------
# Send OTP
# ---------------------------------------------------------
@router.post("/send-otp")
async def send_otp(
    request: SendOTPRequest,
    manager: OTPSessionManager = Depends(get_otp_manager),
):
    result = await manager.issue(request.phone)

    if not result.success:
        return _error_response(result)

    return {"success": True, "message": result.message}


# ---------------------------------------------------------
# Verify OTP
# ---------------------------------------------------------
@router.post("/verify-otp")
async def verify_otp(
    request: VerifyOTPRequest,
    user_id: Optional[str] = Depends(get_optional_user_id),
    manager: OTPSessionManager = Depends(get_otp_manager),
):
    result = await manager.verify(request.phone, request.otp, user_id)

    if not result.success:
        return _error_response(result)

    content = {"success": True, "message": result.message, "verified": True}
    if result.user:
        content["user"] = result.user

    return content


# ---------------------------------------------------------
# Phone Status
# ---------------------------------------------------------
@router.get("/status")
async def phone_status(
    user_id: Optional[str] = Depends(get_optional_user_id),
    manager: OTPSessionManager = Depends(get_otp_manager),
):
    result = manager.status(user_id)

    if not result.success:
        return _error_response(result)

    return {
        "success": True,
        "phone": result.user["phone"],
        "phoneVerified": result.user["phoneVerified"],
    }
