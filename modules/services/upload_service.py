"""Upload a capture to Lutim and record it in the history."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from PIL import Image

from config.settings import AppConfig, ConfigurationError
from modules.services.history_service import UploadHistory, UploadHistoryService
from modules.services.lutim_client import LutimClient, LutimInfo
from modules.utils.background import BackgroundRunner
from modules.utils.clipboard import copy_to_clipboard
from modules.utils.filename import CaptureDetails, filename_from_pattern
from modules.utils.image_utils import OutputSettings, encode_image, generate_thumbnail

logger = logging.getLogger(__name__)

UPLOAD_FAILURE_TEXT = "上传到 Lutim 失败："


@dataclass(slots=True)
class UploadOutcome:
    """Result of one upload call.

    ``url`` is empty when the upload failed, and also when it succeeded but
    the link could not be copied to the clipboard.
    """

    success: bool
    url: str = ""
    message: str = ""
    info: Optional[LutimInfo] = None
    error: Optional[Exception] = field(default=None, repr=False)


class LutimUploadService:
    """Encode, upload, record and hand out the link of a capture."""

    def __init__(
        self,
        config: AppConfig,
        client: LutimClient,
        history: UploadHistory,
        history_service: Optional[UploadHistoryService] = None,
        runner: Optional[BackgroundRunner] = None,
        encoder: Callable[[Image.Image, OutputSettings], bytes] = encode_image,
        thumbnailer: Callable[[Image.Image], Any] = generate_thumbnail,
        clipboard: Callable[[str], None] = copy_to_clipboard,
        notify_error: Optional[Callable[[str], None]] = None,
        on_history_changed: Optional[Callable[[UploadHistory], None]] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.history = history
        self.history_service = history_service
        self.runner = runner or BackgroundRunner()
        self._encoder = encoder
        self._thumbnailer = thumbnailer
        self._clipboard = clipboard
        self._notify_error = notify_error
        self._on_history_changed = on_history_changed

    def upload(self, image: Image.Image, details: Optional[CaptureDetails] = None) -> UploadOutcome:
        """Upload the image and return the outcome; never raises for upload failures.

        Encoding and the network call run on the background runner while the
        calling thread waits for them.
        """
        try:
            settings = OutputSettings.from_config(self.config)
            filename = filename_from_pattern(
                self.config.filename_pattern, settings.format.value, details
            )
        except ConfigurationError as exc:
            return self._fail(exc)

        try:
            info = self.runner.run_and_wait(self._send, image, settings, filename)
        except Exception as exc:  # noqa: BLE001
            return self._fail(exc)

        self._record(info)
        self._enrich(info, image)
        return self._publish(info)

    # Internal helpers ---------------------------------------------------------
    def _send(self, image: Image.Image, settings: OutputSettings, filename: str) -> LutimInfo:
        payload = self._encoder(image, settings)
        return self.client.upload(payload, filename, settings.format.content_type)

    def _fail(self, exc: Exception) -> UploadOutcome:
        logger.error("Error uploading to Lutim: %s", exc)
        message = f"{UPLOAD_FAILURE_TEXT}{exc}"
        if self._notify_error is not None:
            self._notify_error(message)
        return UploadOutcome(success=False, message=message, error=exc)

    def _record(self, info: LutimInfo) -> None:
        logger.info(
            "Storing Lutim upload for short %s and delete token %s", info.short, info.token_hint
        )
        if not self.history.add(info.short, info.to_json(), info):
            return
        if self._on_history_changed is not None:
            self._on_history_changed(self.history)

    def _enrich(self, info: LutimInfo, image: Image.Image) -> None:
        try:
            info.thumbnail = self._thumbnailer(image)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not create thumbnail for %s: %s", info.short, exc)

        if self.history_service is None:
            return
        try:
            self.history_service.save(self.history)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Could not save upload history: %s", exc)

    def _publish(self, info: LutimInfo) -> UploadOutcome:
        url = info.uri
        if not url or not self.config.copy_link_to_clipboard:
            return UploadOutcome(success=True, url=url, message="上传成功", info=info)
        try:
            self._clipboard(url)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Can't write to clipboard: %s", exc)
            return UploadOutcome(
                success=True,
                url="",
                message=f"上传成功，但无法复制链接到剪贴板：{info.uri}",
                info=info,
            )
        return UploadOutcome(success=True, url=url, message="上传成功，链接已复制到剪贴板", info=info)
