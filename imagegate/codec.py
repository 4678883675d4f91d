"""Decoding and encoding of stored image bytes."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Final, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, EncodeError, UnsupportedFormatError

logger = logging.getLogger(__name__)

JPEG_QUALITY: Final[int] = 95

_PIL_FORMATS: Final[dict[str, str]] = {
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "png": "PNG",
}
# Pillow reports JPEGs carrying a multi-picture block (most phone photos) as MPO.
_FORMAT_ALIASES: Final[dict[str, str]] = {"mpo": "jpeg"}
_JPEG_MODES: Final[frozenset[str]] = frozenset({"L", "RGB", "CMYK"})
_PNG_MODES: Final[frozenset[str]] = frozenset({"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"})


def decode_image(data: bytes) -> Tuple[Image.Image, str]:
    """Decode raw bytes, returning the image and its lower-cased format tag."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise DecodeError(f"image: unknown format ({exc})") from exc

    format_tag = (image.format or "").lower()
    return image, _FORMAT_ALIASES.get(format_tag, format_tag)


def is_supported_format(format_tag: str) -> bool:
    return format_tag.lower() in _PIL_FORMATS


def _is_opaque(image: Image.Image) -> bool:
    alpha_min, _ = image.getchannel("A").getextrema()
    return alpha_min == 255


def _prepare_jpeg(image: Image.Image) -> Image.Image:
    """Bring an image into a mode the JPEG encoder accepts."""
    if image.mode in _JPEG_MODES:
        return image

    if image.mode in ("LA", "P", "PA"):
        image = image.convert("RGBA")

    if image.mode == "RGBA":
        if _is_opaque(image):
            # Alpha carries nothing; drop the band instead of compositing.
            return image.convert("RGB")
        background = Image.new("RGBA", image.size, (0, 0, 0, 255))
        return Image.alpha_composite(background, image).convert("RGB")

    return image.convert("RGB")


def encode_image(sink: BinaryIO, image: Image.Image, format_tag: str) -> None:
    """Write ``image`` to ``sink`` in the format named by ``format_tag``."""
    pil_format = _PIL_FORMATS.get(format_tag.lower())
    if pil_format is None:
        raise UnsupportedFormatError(f"unknown format when writing {format_tag!r}")

    save_kwargs: dict = {"format": pil_format}
    try:
        if pil_format == "JPEG":
            image = _prepare_jpeg(image)
            save_kwargs["quality"] = JPEG_QUALITY
        elif image.mode not in _PNG_MODES:
            image = image.convert("RGBA")

        image.save(sink, **save_kwargs)
    except (OSError, ValueError) as exc:
        logger.warning(
            "Image encoding failed",
            extra={"format": pil_format, "mode": image.mode, "size": image.size},
        )
        raise EncodeError(f"failed to encode {pil_format} image: {exc}") from exc
