"""Resize and thumbnail transforms applied to decoded images."""

from __future__ import annotations

import logging
from typing import Tuple

from PIL import Image, ImageOps

from .paths import ResizeMode

logger = logging.getLogger(__name__)

# Pillow's bicubic kernel uses a = -0.5, i.e. Catmull-Rom.
RESAMPLE_FILTER = Image.Resampling.BICUBIC


def _resample_ready(image: Image.Image) -> Image.Image:
    """Expand modes that Pillow would otherwise resize with nearest neighbour."""
    if image.mode == "P":
        return image.convert("RGBA" if "transparency" in image.info else "RGB")
    if image.mode == "1":
        return image.convert("L")
    return image


def fit_size(size: Tuple[int, int], width: int, height: int) -> Tuple[int, int]:
    """Return the largest proportional size of ``size`` inside ``width`` x ``height``."""
    source_width, source_height = size
    if width <= 0:
        scale = height / source_height
    elif height <= 0:
        scale = width / source_width
    else:
        scale = min(width / source_width, height / source_height)

    return (
        max(1, round(source_width * scale)),
        max(1, round(source_height * scale)),
    )


def fit_within(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale proportionally so the image fits inside the box without cropping."""
    if width <= 0 and height <= 0:
        return image.copy()

    target = fit_size(image.size, width, height)
    if target == image.size:
        return image.copy()
    return _resample_ready(image).resize(target, resample=RESAMPLE_FILTER)


def cover_crop(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale and centre-crop so the output is exactly ``width`` x ``height``."""
    if width <= 0 or height <= 0:
        return fit_within(image, width, height)

    return ImageOps.fit(
        _resample_ready(image),
        (width, height),
        method=RESAMPLE_FILTER,
        centering=(0.5, 0.5),
    )


def apply_transform(image: Image.Image, width: int, height: int, mode: ResizeMode) -> Image.Image:
    """Apply the transform selected by a size directive."""
    logger.debug(
        "Applying image transform",
        extra={"width": width, "height": height, "mode": mode.value, "source_size": image.size},
    )
    if mode is ResizeMode.COVER_CROP:
        return cover_crop(image, width, height)
    return fit_within(image, width, height)


def shrink_to_fit(image: Image.Image, max_width: int, max_height: int) -> Image.Image:
    """Downsize an upload that exceeds a positive configured bound; never upscale."""
    source_width, source_height = image.size
    too_wide = max_width > 0 and source_width > max_width
    too_tall = max_height > 0 and source_height > max_height
    if not (too_wide or too_tall):
        return image
    return fit_within(image, max_width, max_height)
