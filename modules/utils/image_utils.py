"""Utility helpers for image encoding and thumbnails."""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from PIL import Image

from config.settings import AppConfig, ConfigurationError

THUMBNAIL_SIZE = (90, 90)


class OutputFormat(str, Enum):
    """Image formats accepted for upload."""

    PNG = "png"
    JPG = "jpg"
    GIF = "gif"
    BMP = "bmp"
    TIFF = "tiff"

    @property
    def pil_format(self) -> str:
        return "JPEG" if self is OutputFormat.JPG else self.value.upper()

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES[self]

    @classmethod
    def parse(cls, value: str) -> "OutputFormat":
        normalized = (value or "").strip().lower().lstrip(".")
        if normalized == "jpeg":
            normalized = "jpg"
        elif normalized == "tif":
            normalized = "tiff"
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ConfigurationError(f"不支持的上传格式：{value}") from exc


_CONTENT_TYPES = {
    OutputFormat.PNG: "image/png",
    OutputFormat.JPG: "image/jpeg",
    OutputFormat.GIF: "image/gif",
    OutputFormat.BMP: "image/bmp",
    OutputFormat.TIFF: "image/tiff",
}


@dataclass(frozen=True, slots=True)
class OutputSettings:
    """How a capture is encoded before upload."""

    format: OutputFormat = OutputFormat.PNG
    jpeg_quality: int = 80
    reduce_colors: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.jpeg_quality <= 100:
            raise ConfigurationError(f"JPEG 质量超出范围 0-100：{self.jpeg_quality}")

    @classmethod
    def from_config(cls, config: AppConfig) -> "OutputSettings":
        """Build fresh settings from the current configuration."""
        return cls(
            format=OutputFormat.parse(config.upload_format),
            jpeg_quality=int(config.upload_jpeg_quality),
            reduce_colors=bool(config.upload_reduce_colors),
        )


def ensure_rgb(image: Image.Image) -> Image.Image:
    """Flatten transparency onto white so the image can be written as JPEG."""
    if image.mode in ("RGBA", "LA"):
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.getchannel("A"))
        return background
    if image.mode == "P" and "transparency" in image.info:
        return ensure_rgb(image.convert("RGBA"))
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def reduce_colors(image: Image.Image, colors: int = 256) -> Image.Image:
    """Quantize to an adaptive palette."""
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")
    if image.mode == "RGBA":
        return image.quantize(colors=colors, method=Image.Quantize.FASTOCTREE)
    return image.quantize(colors=colors)


def encode_image(image: Image.Image, settings: OutputSettings) -> bytes:
    """Serialize the image to bytes according to the output settings."""
    working = image
    if settings.reduce_colors:
        working = reduce_colors(working)

    save_kwargs: dict = {}
    if settings.format is OutputFormat.JPG:
        working = ensure_rgb(working)
        save_kwargs["quality"] = settings.jpeg_quality
        save_kwargs["optimize"] = True
    elif settings.format is OutputFormat.BMP and working.mode in ("RGBA", "LA"):
        working = ensure_rgb(working)

    buffer = io.BytesIO()
    working.save(buffer, format=settings.format.pil_format, **save_kwargs)
    payload = buffer.getvalue()
    if not payload:
        raise ValueError("编码结果为空")
    return payload


def generate_thumbnail(image: Image.Image, max_size: Tuple[int, int] = THUMBNAIL_SIZE) -> Image.Image:
    """Create a thumbnail suitable for history previews."""
    thumb = image.copy()
    thumb.thumbnail(max_size, Image.LANCZOS)
    return thumb
