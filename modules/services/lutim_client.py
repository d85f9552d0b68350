"""Lutim HTTP client."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote, urlsplit

import requests

from config.settings import AppConfig
from modules.utils.logging import mask_secret

logger = logging.getLogger(__name__)


class UploadErrorKind(str, Enum):
    """Failure classes of a single upload attempt."""

    TRANSPORT = "transport"
    PROTOCOL_VIOLATION = "protocol_violation"
    SERVICE_REJECTED = "service_rejected"


class UploadError(RuntimeError):
    """Raised when an upload does not produce a LutimInfo."""

    def __init__(self, kind: UploadErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(slots=True)
class LutimInfo:
    """A successful Lutim upload."""

    short: str
    token: str
    server_url: str
    real_short: str = ""
    filename: str = ""
    ext: str = ""
    created_at: Optional[int] = None
    del_at_view: bool = False
    limit: int = 0
    url: str = ""
    thumbnail: Any = field(default=None, repr=False, compare=False)

    @property
    def uri(self) -> str:
        """Link reported by the server, or one built from the short id."""
        if self.url:
            return self.url
        # encrypted uploads carry their key as "short/key"
        return _server_root(self.server_url) + quote(self.short, safe="/")

    @property
    def delete_url(self) -> str:
        short = quote(self.real_short or self.short, safe="/")
        return f"{_server_root(self.server_url)}d/{short}/{quote(self.token, safe='')}"

    @property
    def token_hint(self) -> str:
        return mask_secret(self.token)

    @classmethod
    def from_response(cls, msg: Dict[str, Any], server_url: str) -> "LutimInfo":
        """Build from the ``msg`` object of a successful Lutim response."""
        short = msg.get("short")
        token = msg.get("token")
        if not isinstance(short, str) or not short.strip():
            raise UploadError(UploadErrorKind.PROTOCOL_VIOLATION, "Lutim 响应缺少 short 字段")
        if not isinstance(token, str) or not token.strip():
            raise UploadError(UploadErrorKind.PROTOCOL_VIOLATION, "Lutim 响应缺少 token 字段")

        created_at = msg.get("created_at")
        limit = msg.get("limit")
        return cls(
            short=short.strip(),
            token=token.strip(),
            server_url=server_url,
            real_short=str(msg.get("real_short") or ""),
            filename=str(msg.get("filename") or ""),
            ext=str(msg.get("ext") or ""),
            created_at=created_at if isinstance(created_at, int) else None,
            del_at_view=bool(msg.get("del_at_view")),
            limit=limit if isinstance(limit, int) else 0,
            url=_http_url(msg.get("url")),
        )

    def to_json(self) -> str:
        """Serialized form stored in the upload history."""
        return json.dumps(
            {
                "short": self.short,
                "token": self.token,
                "server_url": self.server_url,
                "real_short": self.real_short,
                "filename": self.filename,
                "ext": self.ext,
                "created_at": self.created_at,
                "del_at_view": self.del_at_view,
                "limit": self.limit,
                "url": self.url,
            },
            ensure_ascii=False,
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, text: str) -> "LutimInfo":
        """Rebuild a record produced by :meth:`to_json`.

        Raises ValueError when the text is not a valid history record.
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("history record is not an object")
        short = data.get("short")
        token = data.get("token")
        server_url = data.get("server_url")
        if not short or not token or not server_url:
            raise ValueError("history record misses short, token or server_url")
        return cls(
            short=str(short),
            token=str(token),
            server_url=str(server_url),
            real_short=str(data.get("real_short") or ""),
            filename=str(data.get("filename") or ""),
            ext=str(data.get("ext") or ""),
            created_at=data.get("created_at"),
            del_at_view=bool(data.get("del_at_view")),
            limit=int(data.get("limit") or 0),
            url=_http_url(data.get("url")),
        )


def _server_root(server_url: str) -> str:
    return server_url if server_url.endswith("/") else server_url + "/"


def _http_url(value: Any) -> str:
    """Return value when it is an absolute http(s) URL, otherwise an empty string."""
    if not isinstance(value, str):
        return ""
    parts = urlsplit(value.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return ""
    return value.strip()


class LutimClient:
    """Single-attempt uploads to a Lutim server."""

    def __init__(
        self,
        server_url: str,
        timeout: float = 30.0,
        delete_after_days: int = 0,
        delete_on_first_view: bool = False,
        keep_exif: bool = False,
        encrypt: bool = False,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.server_url = server_url if server_url.endswith("/") else server_url + "/"
        self.timeout = timeout
        self.delete_after_days = delete_after_days
        self.delete_on_first_view = delete_on_first_view
        self.keep_exif = keep_exif
        self.encrypt = encrypt
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls, config: AppConfig, session: Optional[requests.Session] = None) -> "LutimClient":
        return cls(
            config.lutim_url,
            timeout=config.upload_timeout,
            delete_after_days=config.delete_after_days,
            delete_on_first_view=config.delete_on_first_view,
            keep_exif=config.keep_exif,
            encrypt=config.encrypt,
            session=session,
        )

    def _form_fields(self) -> Dict[str, str]:
        fields = {
            "format": "json",
            "delete-day": str(self.delete_after_days),
        }
        if self.delete_on_first_view:
            fields["first-view"] = "1"
        if self.keep_exif:
            fields["keep-exif"] = "1"
        if self.encrypt:
            fields["crypt"] = "1"
        return fields

    def upload(self, payload: bytes, filename: str, content_type: str = "image/png") -> LutimInfo:
        """Send the payload to Lutim and return the parsed upload record."""
        if not payload:
            raise ValueError("payload must not be empty")

        logger.debug("Uploading %s (%d bytes) to %s", filename, len(payload), self.server_url)
        try:
            response = self._session.post(
                self.server_url,
                data=self._form_fields(),
                files={"file": (filename, payload, content_type)},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise UploadError(UploadErrorKind.TRANSPORT, f"连接 Lutim 超时：{exc}") from exc
        except requests.ConnectionError as exc:
            raise UploadError(UploadErrorKind.TRANSPORT, f"无法连接 Lutim：{exc}") from exc
        except requests.RequestException as exc:
            raise UploadError(UploadErrorKind.TRANSPORT, f"请求 Lutim 失败：{exc}") from exc

        return self._parse_response(response)

    # Internal helpers ---------------------------------------------------------
    def _parse_response(self, response: requests.Response) -> LutimInfo:
        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            detail = self._failure_message(body) if isinstance(body, dict) else None
            raise UploadError(
                UploadErrorKind.SERVICE_REJECTED,
                detail or f"HTTP {response.status_code} {response.reason or ''}".strip(),
            )

        if not isinstance(body, dict):
            raise UploadError(UploadErrorKind.PROTOCOL_VIOLATION, "Lutim 响应不是 JSON 对象")
        if "success" not in body:
            raise UploadError(UploadErrorKind.PROTOCOL_VIOLATION, "Lutim 响应缺少 success 字段")

        if not body["success"]:
            raise UploadError(
                UploadErrorKind.SERVICE_REJECTED,
                self._failure_message(body) or "Lutim 拒绝了上传",
            )

        msg = body.get("msg")
        if not isinstance(msg, dict):
            raise UploadError(UploadErrorKind.PROTOCOL_VIOLATION, "Lutim 响应缺少 msg 对象")
        return LutimInfo.from_response(msg, self.server_url)

    @staticmethod
    def _failure_message(body: Dict[str, Any]) -> Optional[str]:
        """Lutim reports errors either as a string or as ``{"msg": "..."}``."""
        msg = body.get("msg")
        if isinstance(msg, dict):
            msg = msg.get("msg")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
        return None
