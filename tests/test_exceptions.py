"""Tests for topicli.exceptions.

Covers:
- Named constructors set the kind and keep context
- wrap_exception passthrough, interrupts and internal fallback
- HTTP error mapping from httpx responses and transport errors
"""

from __future__ import annotations

import httpx
import pytest

from topicli.exceptions import ErrorKind, TypedError, error_from_response, wrap_exception


REQUEST = httpx.Request("GET", "http://server.test/api/v4/users/carol")


class TestTypedError:
    def test_constructors(self):
        assert TypedError.auth("a").kind is ErrorKind.AUTH
        assert TypedError.validation("v").kind is ErrorKind.VALIDATION
        assert TypedError.not_found("n").kind is ErrorKind.NOT_FOUND
        assert TypedError.api("p").kind is ErrorKind.API
        assert TypedError.internal("i").kind is ErrorKind.INTERNAL
        assert TypedError.cancelled().message == "Cancelled."

    def test_context_copied(self):
        context = {"username": "carol"}
        err = TypedError.not_found("missing", context=context)
        context["username"] = "dave"
        assert err.context == {"username": "carol"}
        assert str(err) == "missing"


class TestWrapException:
    def test_typed_error_unchanged(self):
        err = TypedError.validation("bad")
        assert wrap_exception(err) is err

    def test_keyboard_interrupt(self):
        err = wrap_exception(KeyboardInterrupt())
        assert err.kind is ErrorKind.CANCELLED

    def test_unexpected_exception(self):
        cause = ValueError("boom")
        err = wrap_exception(cause)
        assert err.kind is ErrorKind.INTERNAL
        assert err.message == "boom"
        assert err.cause is cause

    def test_unexpected_exception_without_message(self):
        assert wrap_exception(RuntimeError()).message == "RuntimeError"

    def test_http_status_error(self):
        response = httpx.Response(404, json={"message": "user not found"}, request=REQUEST)
        cause = httpx.HTTPStatusError("404", request=REQUEST, response=response)
        err = wrap_exception(cause)
        assert err.kind is ErrorKind.NOT_FOUND
        assert err.message == "HTTP 404: user not found"
        assert err.cause is cause

    def test_timeout(self):
        err = wrap_exception(httpx.ReadTimeout("read timed out", request=REQUEST))
        assert err.kind is ErrorKind.API
        assert err.message.startswith("Request timed out")

    def test_connect_error(self):
        err = wrap_exception(httpx.ConnectError("refused", request=REQUEST))
        assert err.kind is ErrorKind.API
        assert err.message == "Could not reach the server: refused"


class TestErrorFromResponse:
    def test_success_is_none(self):
        assert error_from_response(httpx.Response(200, request=REQUEST)) is None

    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (401, ErrorKind.AUTH),
            (403, ErrorKind.AUTH),
            (404, ErrorKind.NOT_FOUND),
            (409, ErrorKind.API),
            (500, ErrorKind.API),
        ],
    )
    def test_status_mapping(self, status, kind):
        err = error_from_response(httpx.Response(status, json={"error": "nope"}, request=REQUEST))
        assert err.kind is kind
        assert err.status == status
        assert err.message == f"HTTP {status}: nope"

    def test_detail_field(self):
        err = error_from_response(httpx.Response(422, json={"detail": "bad email"}, request=REQUEST))
        assert err.message == "HTTP 422: bad email"

    def test_text_body(self):
        err = error_from_response(httpx.Response(502, text="Bad Gateway", request=REQUEST))
        assert err.message == "HTTP 502: Bad Gateway"

    def test_empty_body(self):
        err = error_from_response(httpx.Response(500, request=REQUEST))
        assert err.message == "HTTP 500"
