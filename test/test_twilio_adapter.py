"""Tests for the Twilio telephony adapter (sync, mocked httpx client)."""

import hashlib
import hmac
from base64 import b64encode
from unittest.mock import MagicMock

import httpx
import pytest

from voice_booking.shared.exceptions import ConfigurationError
from voice_booking.telephony.config import ProviderType, TelephonyConfig
from voice_booking.telephony.interface import (
    CallInitiationError,
    CallInitiationRequest,
    CallStatus,
    WebhookParseError,
)
from voice_booking.telephony.twilio_adapter import TwilioAdapter


@pytest.fixture
def twilio_config() -> TelephonyConfig:
    return TelephonyConfig(
        provider_type=ProviderType.TWILIO,
        twilio_account_sid="AC_TEST_ACCOUNT_SID",
        twilio_auth_token="test_auth_token_12345",
        twilio_from_number="+14155550000",
        webhook_base_url="https://example.com",
        call_timeout_seconds=45,
    )


@pytest.fixture
def call_request() -> CallInitiationRequest:
    return CallInitiationRequest(
        to="+14155551234",
        from_number="+14155550000",
        answer_url="https://example.com/webhooks/telephony/answer",
        status_callback_url="https://example.com/webhooks/telephony/status",
    )


def _client_returning(response: httpx.Response) -> MagicMock:
    mock_client = MagicMock(spec=httpx.Client)
    mock_client.post.return_value = response
    return mock_client


class TestInitiateCallSync:
    def test_initiate_call_success(self, twilio_config, call_request) -> None:
        mock_client = _client_returning(
            httpx.Response(
                status_code=201,
                json={
                    "sid": "CA_TEST_CALL_SID_123",
                    "status": "queued",
                    "date_created": "Mon, 15 Jan 2024 10:30:00 +0000",
                },
            )
        )
        adapter = TwilioAdapter(config=twilio_config, http_client=mock_client)

        response = adapter.initiate_call_sync(call_request)

        assert response.provider_call_id == "CA_TEST_CALL_SID_123"
        assert response.status == CallStatus.QUEUED
        assert response.created_at.year == 2024

        args, kwargs = mock_client.post.call_args
        assert args[0] == "https://api.twilio.com/2010-04-01/Accounts/AC_TEST_ACCOUNT_SID/Calls.json"
        assert kwargs["auth"] == ("AC_TEST_ACCOUNT_SID", "test_auth_token_12345")
        data = kwargs["data"]
        assert data["To"] == "+14155551234"
        assert data["From"] == "+14155550000"
        assert data["Url"] == "https://example.com/webhooks/telephony/answer"
        assert data["StatusCallback"] == "https://example.com/webhooks/telephony/status"
        assert data["StatusCallbackEvent"] == ["initiated", "ringing", "answered", "completed"]
        assert data["Timeout"] == 45

    def test_initiate_call_api_error(self, twilio_config, call_request) -> None:
        mock_client = _client_returning(
            httpx.Response(status_code=400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})
        )
        adapter = TwilioAdapter(config=twilio_config, http_client=mock_client)

        with pytest.raises(CallInitiationError) as exc_info:
            adapter.initiate_call_sync(call_request)

        assert exc_info.value.error_code == "21211"
        assert "Invalid 'To' Phone Number" in str(exc_info.value)

    def test_initiate_call_http_error(self, twilio_config, call_request) -> None:
        mock_client = MagicMock(spec=httpx.Client)
        mock_client.post.side_effect = httpx.ConnectError("Connection failed")
        adapter = TwilioAdapter(config=twilio_config, http_client=mock_client)

        with pytest.raises(CallInitiationError) as exc_info:
            adapter.initiate_call_sync(call_request)

        assert exc_info.value.error_code == "HTTP_ERROR"

    def test_missing_credentials(self, call_request) -> None:
        config = TelephonyConfig(twilio_account_sid="", twilio_auth_token="", webhook_base_url="https://x")
        adapter = TwilioAdapter(config=config, http_client=MagicMock(spec=httpx.Client))

        with pytest.raises(ConfigurationError):
            adapter.initiate_call_sync(call_request)


class TestParseStatusCallback:
    def test_parse_status(self, twilio_config) -> None:
        adapter = TwilioAdapter(config=twilio_config)

        event = adapter.parse_status_callback(
            {"CallSid": "CA123", "CallStatus": "no-answer", "CallDuration": "0"}
        )

        assert event.provider_call_id == "CA123"
        assert event.raw_status == "no-answer"
        assert event.status == CallStatus.NO_ANSWER
        assert event.duration_seconds == 0

    def test_unknown_status_is_kept_raw(self, twilio_config) -> None:
        event = TwilioAdapter(config=twilio_config).parse_status_callback(
            {"CallSid": "CA123", "CallStatus": "something-new"}
        )

        assert event.status is None
        assert event.raw_status == "something-new"

    @pytest.mark.parametrize("payload", [{"CallStatus": "busy"}, {"CallSid": "CA123"}])
    def test_missing_fields(self, twilio_config, payload) -> None:
        with pytest.raises(WebhookParseError):
            TwilioAdapter(config=twilio_config).parse_status_callback(payload)


class TestValidateWebhookSignature:
    def _sign(self, token: str, url: str, params: dict) -> str:
        data = url + "".join(f"{k}{params[k]}" for k in sorted(params))
        return b64encode(hmac.new(token.encode(), data.encode(), hashlib.sha1).digest()).decode()

    def test_valid_signature(self, twilio_config) -> None:
        adapter = TwilioAdapter(config=twilio_config)
        url = "https://example.com/webhooks/telephony/gather"
        params = {"CallSid": "CA123", "SpeechResult": "Friday works"}

        signature = self._sign("test_auth_token_12345", url, params)

        assert adapter.validate_webhook_signature(url, params, signature) is True

    def test_invalid_signature(self, twilio_config) -> None:
        adapter = TwilioAdapter(config=twilio_config)

        assert adapter.validate_webhook_signature("https://example.com/x", {"CallSid": "CA1"}, "bogus") is False

    def test_no_token_skips_validation(self) -> None:
        adapter = TwilioAdapter(config=TelephonyConfig(twilio_auth_token=""))

        assert adapter.validate_webhook_signature("https://example.com/x", {}, "") is True
