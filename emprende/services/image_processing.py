"""Image normalization for marketplace uploads.

User images (logos, product and service photos) are decoded, shrunk to fit
within the configured bounding box while keeping their aspect ratio, and
re-encoded as WebP before being handed to :mod:`emprende.services.storage`.

The raster work goes through an :class:`ImageBackend` so the resize and
validation rules do not depend on a particular imaging library. The default
backend uses Pillow.
"""
from __future__ import annotations

import asyncio
import io
import logging
import math
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Tuple

from PIL import Image, UnidentifiedImageError

from emprende.models import CompressionInfo, ImageFile, ImageProcessingOptions

logger = logging.getLogger(__name__)

VALID_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
WEBP_MIME_TYPE = "image/webp"
WEBP_EXTENSION = "webp"

_MEBIBYTE = 1024 * 1024
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


class ImageProcessingError(Exception):
    """Base class for failures while normalizing a single image."""


class ImageLoadError(ImageProcessingError):
    """The source bytes could not be decoded as a raster image."""

    def __init__(self, message: str = "Could not load the image") -> None:
        super().__init__(message)


class InvalidDimensionsError(ImageProcessingError):
    """The decoded image reports a non-positive width or height."""

    def __init__(self, width: int, height: int) -> None:
        super().__init__(f"Invalid image dimensions: {width}x{height}")
        self.width = width
        self.height = height


class ImageConversionError(ImageProcessingError):
    """The encoder produced no output."""

    def __init__(self, message: str = "Could not convert the image") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class ImageBackend(ABC):
    """Raster decode/render/encode capability.

    ``decode`` returns a raster exposing ``width`` and ``height``; ``render``
    draws it onto a surface of the requested size; ``encode`` compresses the
    surface to WebP bytes at a quality in ``(0, 1]``.
    """

    name: str = "abstract"

    @abstractmethod
    def decode(self, data: bytes) -> Any:
        ...

    @abstractmethod
    def render(self, raster: Any, width: int, height: int) -> Any:
        ...

    @abstractmethod
    def encode(self, surface: Any, quality: float) -> bytes:
        ...


class PillowBackend(ImageBackend):
    name = "pillow"

    def decode(self, data: bytes) -> Image.Image:
        buffer = io.BytesIO(data)
        try:
            with Image.open(buffer) as img:
                img.load()
                # Detach from the source buffer so it can be released now.
                return img.copy()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, EOFError, ValueError) as exc:
            raise ImageLoadError() from exc
        finally:
            buffer.close()

    def render(self, raster: Image.Image, width: int, height: int) -> Image.Image:
        has_alpha = raster.mode in ("RGBA", "LA", "PA") or "transparency" in raster.info
        surface = raster.convert("RGBA" if has_alpha else "RGB")
        if surface.size != (width, height):
            surface = surface.resize((width, height), Image.Resampling.LANCZOS)
        return surface

    def encode(self, surface: Image.Image, quality: float) -> bytes:
        buffer = io.BytesIO()
        try:
            surface.save(buffer, format="WEBP", quality=int(round(quality * 100)), method=4)
        except (OSError, KeyError, ValueError) as exc:
            raise ImageConversionError() from exc
        return buffer.getvalue()


@lru_cache()
def get_backend() -> ImageBackend:
    return PillowBackend()


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def is_valid_image_file(file: ImageFile) -> bool:
    """Return True when *file* declares one of the accepted source types."""

    return (file.mime_type or "").lower() in VALID_IMAGE_TYPES


def compute_target_size(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """Return the output size for a *width* x *height* source.

    Sources inside the bounding box keep their size. Larger ones are scaled by
    a single factor so neither side exceeds its maximum, rounding down.
    """

    if width <= 0 or height <= 0:
        raise InvalidDimensionsError(width, height)

    if width > max_width or height > max_height:
        ratio = min(max_width / width, max_height / height)
        # Extreme aspect ratios would otherwise floor to zero.
        width = max(1, math.floor(width * ratio))
        height = max(1, math.floor(height * ratio))
    return width, height


def webp_file_name(name: str) -> str:
    return f"{name.split('.')[0]}.{WEBP_EXTENSION}"


async def convert_to_webp(
    file: ImageFile,
    options: ImageProcessingOptions | None = None,
    *,
    backend: ImageBackend | None = None,
) -> ImageFile:
    """Decode, resize and re-encode *file* as WebP.

    Parameters
    ----------
    file : ImageFile
        Source image as uploaded by the user.
    options : ImageProcessingOptions, optional
        Quality and bounding box; defaults to 0.8 and 1200x1200.
    backend : ImageBackend, optional
        Raster implementation, Pillow by default.

    Raises
    ------
    ImageLoadError
        The source is not a decodable image.
    InvalidDimensionsError
        The decoded image has a non-positive width or height.
    ImageConversionError
        Encoding produced no bytes.
    """

    options = options or ImageProcessingOptions()
    backend = backend or get_backend()

    raster = await asyncio.to_thread(backend.decode, file.data)
    width, height = compute_target_size(raster.width, raster.height, options.max_width, options.max_height)
    if (width, height) != (raster.width, raster.height):
        logger.debug("Resizing %s from %dx%d to %dx%d", file.name, raster.width, raster.height, width, height)

    surface = await asyncio.to_thread(backend.render, raster, width, height)
    encoded = await asyncio.to_thread(backend.encode, surface, options.quality)
    if not encoded:
        raise ImageConversionError()

    return ImageFile(
        name=webp_file_name(file.name),
        mime_type=WEBP_MIME_TYPE,
        data=encoded,
        width=width,
        height=height,
    )


def get_compression_info(original: ImageFile, processed: ImageFile) -> CompressionInfo:
    """Summarize the size change between *original* and *processed*.

    ``reduction`` is negative when the processed file is larger. An empty
    original reports a reduction of 0.
    """

    original_size = original.size
    processed_size = processed.size
    if original_size:
        reduction = (original_size - processed_size) / original_size * 100
    else:
        reduction = 0.0

    return CompressionInfo(
        original_size=original_size,
        processed_size=processed_size,
        reduction=math.floor(reduction + 0.5),
        original_size_mb=f"{original_size / _MEBIBYTE:.2f}",
        processed_size_mb=f"{processed_size / _MEBIBYTE:.2f}",
    )


def format_file_size(size: float) -> str:
    """Format a byte count with binary units, e.g. ``1.00 KB``."""

    if size == 0:
        return "0 Bytes"

    # log2 is exact on powers of two, so 1024 ** n lands on unit n.
    index = math.floor(math.log2(size) / 10) if size > 0 else 0
    index = min(max(index, 0), len(_SIZE_UNITS) - 1)
    return f"{size / 1024 ** index:.2f} {_SIZE_UNITS[index]}"
