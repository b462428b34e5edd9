"""
Tests for the 2Factor SMS gateway client
"""
import httpx
import pytest

from advisory.sms.service import (
    PLACEHOLDER_API_KEY,
    GatewayResult,
    SMSGatewayError,
    TwoFactorSMSService,
    mask_phone,
)


def _service(handler, api_key="live-key"):
    return TwoFactorSMSService(
        api_key=api_key,
        base_url="https://2factor.test/API/V1/",
        otp_template="OTP1",
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


async def test_send_code_hits_autogen_endpoint():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json={"Status": "Success", "Details": "abc-123"})

    result = await _service(handler).send_code("919876543210")

    assert result == GatewayResult(success=True, details="abc-123")
    assert seen == ["/API/V1/live-key/SMS/919876543210/AUTOGEN3/OTP1"]


async def test_verify_code_hits_verify_endpoint():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json={"Status": "Success", "Details": "OTP Matched"})

    result = await _service(handler).verify_code("919876543210", "1234")

    assert result.success is True
    assert seen == ["/API/V1/live-key/SMS/VERIFY3/919876543210/1234"]


async def test_mismatch_is_a_failure_result():
    def handler(request):
        return httpx.Response(200, json={"Status": "Error", "Details": "OTP Mismatch"})

    result = await _service(handler).verify_code("919876543210", "0000")

    assert result == GatewayResult(success=False, details="OTP Mismatch")


async def test_http_error_status_is_a_failure_even_with_success_body():
    def handler(request):
        return httpx.Response(500, json={"Status": "Success"})

    result = await _service(handler).send_code("919876543210")

    assert result.success is False
    assert result.details == "HTTP 500"


async def test_non_json_body_is_a_failure_result():
    def handler(request):
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    result = await _service(handler).send_code("919876543210")

    assert result.success is False
    assert "502" in result.details


async def test_timeout_raises_gateway_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(SMSGatewayError):
        await _service(handler).verify_code("919876543210", "1234")


async def test_connection_failure_does_not_leak_api_key():
    def handler(request):
        raise httpx.ConnectError("refused: https://2factor.test/API/V1/live-key", request=request)

    with pytest.raises(SMSGatewayError) as exc_info:
        await _service(handler).send_code("919876543210")

    assert "live-key" not in str(exc_info.value)


@pytest.mark.parametrize("api_key,configured", [
    ("live-key", True),
    ("", False),
    (PLACEHOLDER_API_KEY, False),
])
def test_is_configured(api_key, configured):
    service = _service(lambda request: httpx.Response(200), api_key=api_key)

    assert service.is_configured is configured
    assert service.test_connection()["initialized"] is configured


def test_mask_phone():
    assert mask_phone("919876543210") == "91******3210"
    assert mask_phone("123") == "***"
