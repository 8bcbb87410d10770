import pytest

from models.proxy_request_model import Operation, ProxyRequest
from services.gateway_service import GatewayService
from utils.transform_util import PHONE_ALIASES, TransformError, transform_payload

PHONE = '+911234567890'


def test_otp_generate_broadcasts_phone_under_every_alias():
    out = transform_payload(Operation.OTP_GENERATE, {'phoneNumber': PHONE})
    assert set(out) == {'phone_number', 'phone', 'phoneNumber', 'phone_no', 'mobile', 'phoneNo'}
    assert all(v == PHONE for v in out.values())


def test_otp_verify_keeps_otp_and_broadcasts_phone():
    out = transform_payload(Operation.OTP_VERIFY, {'phoneNumber': PHONE, 'otp': '482913', 'extra': 'dropped'})
    assert out['otp'] == '482913'
    assert 'extra' not in out
    for alias in PHONE_ALIASES:
        assert out[alias] == PHONE


def test_pass_through_operations_copy_payload():
    payload = {'name': 'Asha', 'phone_no': PHONE}
    out = transform_payload(Operation.REGISTER, payload)
    assert out == payload
    assert out is not payload


def test_unmapped_operation_raises():
    with pytest.raises(TransformError):
        transform_payload(Operation.ANALYTICS, {})


def test_custom_table_changes_upstream_keys():
    table = {Operation.OTP_GENERATE: {'phoneNumber': ('msisdn',)}}
    assert transform_payload(Operation.OTP_GENERATE, {'phoneNumber': PHONE}, table) == {'msisdn': PHONE}


@pytest.mark.asyncio
async def test_otp_generate_dispatches_all_aliases(settings, http_client, upstream):
    upstream.json('POST', '/scaleup2026/otp/generate', {'success': True})
    gateway = GatewayService(settings, client=http_client)
    request = ProxyRequest(operation=Operation.OTP_GENERATE, request_id='r', fields={'phoneNumber': PHONE})

    result = await gateway.otp_generate(request)

    assert result.status_code == 200
    sent = upstream.json_body()
    assert sorted(sent) == sorted(PHONE_ALIASES)
    assert set(sent.values()) == {PHONE}
