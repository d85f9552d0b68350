"""LutimClient unit tests."""

from __future__ import annotations

import json
from typing import Any, Optional

import pytest
import requests

from config.settings import AppConfig
from modules.services.lutim_client import LutimClient, LutimInfo, UploadError, UploadErrorKind


class DummyResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, body: Any = None, status_code: int = 200, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self.reason = "OK" if status_code < 400 else "Error"
        self._text = text if text is not None else json.dumps(body)

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return json.loads(self._text)


class DummySession:
    """Capture post() calls and answer with a prepared response or error."""

    def __init__(self, response: Optional[DummyResponse] = None, error: Optional[Exception] = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def post(self, url: str, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


def success_body(**overrides: Any) -> dict:
    msg = {
        "short": "abc123",
        "real_short": "abc123",
        "token": "tok1",
        "filename": "capture.png",
        "ext": "png",
        "created_at": 1700000000,
        "del_at_view": False,
        "limit": 0,
        "thumb": "iVBORw0KGgo=",
    }
    msg.update(overrides)
    return {"success": True, "msg": msg}


def make_client(session: DummySession, **kwargs) -> LutimClient:
    return LutimClient("https://x", session=session, **kwargs)


def test_upload_parses_success_response():
    session = DummySession(DummyResponse(success_body()))
    client = make_client(session)

    info = client.upload(b"png-bytes", "capture.png", "image/png")

    assert info.short == "abc123"
    assert info.token == "tok1"
    assert info.uri == "https://x/abc123"
    assert info.delete_url == "https://x/d/abc123/tok1"
    assert info.created_at == 1700000000


def test_upload_sends_multipart_request():
    session = DummySession(DummyResponse(success_body()))
    client = make_client(session, timeout=5, delete_after_days=7, delete_on_first_view=True, encrypt=True)

    client.upload(b"png-bytes", "capture.png", "image/png")

    call = session.calls[0]
    assert call["url"] == "https://x/"
    assert call["timeout"] == 5
    assert call["files"] == {"file": ("capture.png", b"png-bytes", "image/png")}
    assert call["data"]["format"] == "json"
    assert call["data"]["delete-day"] == "7"
    assert call["data"]["first-view"] == "1"
    assert call["data"]["crypt"] == "1"
    assert "keep-exif" not in call["data"]


def test_from_config_uses_upload_options():
    config = AppConfig(lutim_url="https://lutim.example/", upload_timeout=12.5, keep_exif=True)
    client = LutimClient.from_config(config, session=DummySession())

    assert client.server_url == "https://lutim.example/"
    assert client.timeout == 12.5
    assert client.keep_exif is True


def test_upload_rejects_empty_payload():
    client = make_client(DummySession())
    with pytest.raises(ValueError):
        client.upload(b"", "capture.png")


@pytest.mark.parametrize(
    "error",
    [
        requests.Timeout("read timed out"),
        requests.ConnectionError("connection refused"),
        requests.RequestException("boom"),
    ],
)
def test_transport_errors(error):
    client = make_client(DummySession(error=error))

    with pytest.raises(UploadError) as exc_info:
        client.upload(b"data", "capture.png")

    assert exc_info.value.kind is UploadErrorKind.TRANSPORT


@pytest.mark.parametrize(
    "response",
    [
        DummyResponse(text="<html>not json</html>"),
        DummyResponse(["unexpected", "list"]),
        DummyResponse({"msg": {"short": "abc123", "token": "tok1"}}),
        DummyResponse({"success": True, "msg": "abc123"}),
        DummyResponse(success_body(short="")),
        DummyResponse(success_body(token=None)),
    ],
)
def test_protocol_violations(response):
    client = make_client(DummySession(response))

    with pytest.raises(UploadError) as exc_info:
        client.upload(b"data", "capture.png")

    assert exc_info.value.kind is UploadErrorKind.PROTOCOL_VIOLATION


def test_service_rejection_with_nested_message():
    body = {"success": False, "msg": {"filename": "capture.png", "msg": "File too big"}}
    client = make_client(DummySession(DummyResponse(body)))

    with pytest.raises(UploadError) as exc_info:
        client.upload(b"data", "capture.png")

    assert exc_info.value.kind is UploadErrorKind.SERVICE_REJECTED
    assert exc_info.value.message == "File too big"


def test_service_rejection_with_plain_message():
    client = make_client(DummySession(DummyResponse({"success": False, "msg": "Quota exceeded"})))

    with pytest.raises(UploadError) as exc_info:
        client.upload(b"data", "capture.png")

    assert exc_info.value.kind is UploadErrorKind.SERVICE_REJECTED
    assert "Quota exceeded" in str(exc_info.value)


def test_http_error_without_body_is_service_rejection():
    client = make_client(DummySession(DummyResponse(text="Bad gateway", status_code=502)))

    with pytest.raises(UploadError) as exc_info:
        client.upload(b"data", "capture.png")

    assert exc_info.value.kind is UploadErrorKind.SERVICE_REJECTED
    assert "502" in exc_info.value.message


def test_unknown_fields_are_ignored():
    body = success_body(brand_new_field={"nested": True})
    body["api_version"] = 3
    client = make_client(DummySession(DummyResponse(body)))

    info = client.upload(b"data", "capture.png")

    assert info.short == "abc123"


def test_info_json_round_trip_keeps_short_and_uri():
    info = LutimInfo.from_response(success_body()["msg"], "https://x/")

    restored = LutimInfo.from_json(info.to_json())

    assert restored.short == info.short
    assert restored.uri == info.uri
    assert restored.token == info.token


def test_token_hint_masks_delete_token():
    info = LutimInfo(short="abc123", token="secret-token-value", server_url="https://x/")

    assert info.token_hint == "secr***"
    assert "token-value" not in info.token_hint


def test_uri_prefers_link_reported_by_server():
    body = success_body(url="https://x/abc123")
    client = LutimClient("https://lutim.example/", session=DummySession(DummyResponse(body)))

    info = client.upload(b"data", "capture.png")

    assert info.uri == "https://x/abc123"
    assert info.delete_url == "https://lutim.example/d/abc123/tok1"

    restored = LutimInfo.from_json(info.to_json())
    assert restored.uri == "https://x/abc123"


def test_uri_falls_back_to_quoted_short_id():
    info = LutimInfo(short="ab:c", token="tok1", server_url="https://lutim.example")

    assert info.uri == "https://lutim.example/ab%3Ac"


def test_uri_keeps_encryption_key_separator():
    info = LutimInfo(short="abc123/k3y", token="tok1", server_url="https://lutim.example/")

    assert info.uri == "https://lutim.example/abc123/k3y"


@pytest.mark.parametrize("url", ["javascript:alert(1)", "/abc123", "", 42])
def test_non_http_link_from_server_is_ignored(url):
    info = LutimInfo.from_response(success_body(url=url)["msg"], "https://lutim.example/")

    assert info.url == ""
    assert info.uri == "https://lutim.example/abc123"
