"""Shared helpers for building sample images."""

from __future__ import annotations

import io

import pytest
from PIL import Image


def make_image_bytes(
    width: int,
    height: int,
    *,
    image_format: str = "PNG",
    mode: str = "RGB",
    color=(200, 40, 90),
) -> bytes:
    """Encode a solid-colour image in memory."""
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=image_format)
    return buffer.getvalue()


def make_multi_picture_jpeg(width: int, height: int) -> bytes:
    """Encode a JPEG with an MP extension and a second frame, as phone cameras do."""
    buffer = io.BytesIO()
    primary = Image.new("RGB", (width, height), (200, 40, 90))
    preview = Image.new("RGB", (width // 2, height // 2), (20, 40, 90))
    primary.save(buffer, format="MPO", save_all=True, append_images=[preview])
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes(400, 200)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes(400, 200, image_format="JPEG")
