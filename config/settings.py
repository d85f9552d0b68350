"""Configuration helpers for the Lutim uploader."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_LUTIM_URL = "https://lut.im/"
DEFAULT_FILENAME_PATTERN = "${title}_${YYYY}-${MM}-${DD}_${hh}-${mm}-${ss}"


class ConfigurationError(RuntimeError):
    """Raised when the configuration cannot be read or holds invalid values."""


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    lutim_url: str = DEFAULT_LUTIM_URL
    upload_format: str = "png"
    upload_jpeg_quality: int = 80
    upload_reduce_colors: bool = False
    filename_pattern: str = DEFAULT_FILENAME_PATTERN
    copy_link_to_clipboard: bool = True
    upload_timeout: float = 30.0
    delete_after_days: int = 0
    delete_on_first_view: bool = False
    keep_exif: bool = False
    encrypt: bool = False
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    history_path: Path = Path("logs/history.json")
    max_history: int = 100
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"无法读取配置文件 {path}：{exc}") from exc

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} 不是合法的布尔值：{raw}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} 不是合法的整数：{raw}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} 不是合法的数字：{raw}") from exc


def _log_level(raw: Optional[str]) -> str:
    level = (raw or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"LUTIM_LOG_LEVEL 不是合法的日志级别：{raw}")
    return level


def _normalize_server_url(url: str) -> str:
    """Lutim resolves short ids relative to the server root, keep a trailing slash."""
    cleaned = url.strip()
    if not cleaned.startswith(("http://", "https://")):
        raise ConfigurationError(f"Lutim 服务地址无效：{url}")
    if not cleaned.endswith("/"):
        cleaned += "/"
    return cleaned


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    log_dir = Path(os.getenv("LUTIM_LOG_DIR") or "logs").expanduser()
    history_env = os.getenv("LUTIM_HISTORY_PATH")
    history_path = Path(history_env).expanduser() if history_env else log_dir / "history.json"

    quality = _env_int("LUTIM_UPLOAD_JPEG_QUALITY", 80)
    if not 0 <= quality <= 100:
        raise ConfigurationError(f"LUTIM_UPLOAD_JPEG_QUALITY 超出范围 0-100：{quality}")

    max_history = _env_int("LUTIM_MAX_HISTORY", 100)
    if max_history < 1:
        raise ConfigurationError(f"LUTIM_MAX_HISTORY 必须大于 0：{max_history}")

    metadata: dict[str, Any] = {}
    server_label = os.getenv("LUTIM_SERVER_LABEL")
    if server_label:
        metadata["server_label"] = server_label

    return AppConfig(
        lutim_url=_normalize_server_url(os.getenv("LUTIM_URL") or DEFAULT_LUTIM_URL),
        upload_format=(os.getenv("LUTIM_UPLOAD_FORMAT") or "png").strip().lower(),
        upload_jpeg_quality=quality,
        upload_reduce_colors=_env_bool("LUTIM_UPLOAD_REDUCE_COLORS", False),
        filename_pattern=os.getenv("LUTIM_FILENAME_PATTERN") or DEFAULT_FILENAME_PATTERN,
        copy_link_to_clipboard=_env_bool("LUTIM_COPY_LINK_TO_CLIPBOARD", True),
        upload_timeout=_env_float("LUTIM_UPLOAD_TIMEOUT", 30.0),
        delete_after_days=_env_int("LUTIM_DELETE_AFTER_DAYS", 0),
        delete_on_first_view=_env_bool("LUTIM_DELETE_ON_FIRST_VIEW", False),
        keep_exif=_env_bool("LUTIM_KEEP_EXIF", False),
        encrypt=_env_bool("LUTIM_ENCRYPT", False),
        log_level=_log_level(os.getenv("LUTIM_LOG_LEVEL")),
        log_dir=log_dir,
        history_path=history_path,
        max_history=max_history,
        metadata=metadata,
    )
