"""Tests for classifying unsuccessful responses."""

import json

import pytest

from prcclient.exceptions import ErrorKind, HttpError
from prcclient.services.error_classifier import classify_error


class TestClassifyError:
    """Tests for classify_error."""

    def test_decodes_api_error_body(self):
        body = '{"code": 4001, "message": "You are being rate limited!", "commandId": "c-1"}'
        error = classify_error(429, {"Retry-After": "5"}, body)

        assert isinstance(error, HttpError)
        assert error.status == 429
        assert error.code == 4001
        assert error.message == "You are being rate limited!"
        assert error.command_id == "c-1"
        assert error.retry_after_ms == 5000.0
        assert error.raw_body == body
        assert error.kind is ErrorKind.RATE_LIMITED
        assert error.retryable
        assert str(error) == "[429] You are being rate limited!"

    def test_plain_text_body_becomes_message(self):
        error = classify_error(502, {}, "Bad Gateway from upstream")
        assert error.message == "Bad Gateway from upstream"
        assert error.code is None
        assert error.kind is ErrorKind.HTTP
        assert not error.retryable

    def test_json_of_another_shape(self):
        error = classify_error(400, {}, '["not", "an", "object"]')
        assert error.message == '["not", "an", "object"]'
        assert error.code is None

    @pytest.mark.parametrize("body", [None, ""])
    def test_empty_body_falls_back_to_reason(self, body):
        error = classify_error(503, {}, body, reason="Service Unavailable")
        assert error.message == "Service Unavailable"
        assert error.kind is ErrorKind.SERVER

    def test_generic_message_without_reason(self):
        assert classify_error(500, {}, None).message == "Request failed"

    def test_string_code_is_coerced(self):
        assert classify_error(403, {}, '{"code": "2002"}').code == 2002

    @pytest.mark.parametrize("code", [True, "abc", 1.5, None, "--5", "\u00b2", "-\u00b3"])
    def test_unusable_code_is_dropped(self, code):
        assert classify_error(403, {}, json.dumps({"code": code})).code is None

    def test_missing_retry_after(self):
        assert classify_error(429, {}, "").retry_after_ms is None

    def test_unparseable_retry_after(self):
        assert classify_error(429, {"retry-after": "Wed, 21 Oct 2015"}, "").retry_after_ms is None

    @pytest.mark.parametrize("body", ["[" * 200_000, '{"a":' * 200_000])
    def test_deeply_nested_body_is_kept_as_text(self, body):
        error = classify_error(500, {}, body)
        assert error.message == body
        assert error.code is None
        assert error.kind is ErrorKind.SERVER
