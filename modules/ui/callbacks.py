"""Callback implementations for the Gradio interface."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from config.settings import AppConfig
from modules.services.history_service import UploadHistory
from modules.services.lutim_client import LutimInfo
from modules.services.upload_service import LutimUploadService
from modules.utils.filename import CaptureDetails

HISTORY_COLUMNS = ["Short", "链接", "文件名", "上传时间", "删除链接"]


def build_callbacks(
    config: AppConfig,
    upload_service: Optional[LutimUploadService] = None,
    history: Optional[UploadHistory] = None,
) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions."""

    store = history
    if store is None and upload_service is not None:
        store = upload_service.history

    def _ensure_upload_service() -> LutimUploadService:
        if upload_service is None:
            raise RuntimeError("Lutim 上传服务未配置")
        return upload_service

    def _format_time(info: LutimInfo) -> str:
        if info.created_at is None:
            return ""
        return datetime.fromtimestamp(info.created_at).strftime("%Y-%m-%d %H:%M:%S")

    def _history_rows(limit: Optional[int] = None) -> List[List[str]]:
        if store is None:
            return []
        return [
            [info.short, info.uri, info.filename, _format_time(info), info.delete_url]
            for info in store.list(limit)
        ]

    def has_history() -> bool:
        return store is not None and store.has_entries()

    def on_upload(image: Any, title: str) -> tuple[str, str, bool]:
        """Upload the given image; returns (link, status, history available)."""
        if image is None:
            return "", "上传失败：请先选择截图。", has_history()

        service = _ensure_upload_service()
        details = CaptureDetails(title=(title or "").strip() or "screenshot")
        try:
            outcome = service.upload(image, details)
        except Exception as exc:  # noqa: BLE001
            return "", f"上传失败：{exc}", has_history()

        if not outcome.success:
            return "", outcome.message, has_history()

        link = outcome.url or (outcome.info.uri if outcome.info is not None else "")
        return link, outcome.message, has_history()

    def on_show_history() -> tuple[list[tuple[Any, str]], List[List[str]], str]:
        """Return gallery items, table rows and a status line."""
        if not has_history():
            return [], [], "暂无上传记录。"
        assert store is not None  # For type checkers

        gallery = [
            (info.thumbnail, info.short)
            for info in store.list(config.max_history)
            if info.thumbnail is not None
        ]
        rows = _history_rows(config.max_history)
        return gallery, rows, f"共 {store.count()} 条上传记录。"

    return {
        "on_upload": on_upload,
        "on_show_history": on_show_history,
        "has_history": has_history,
    }
