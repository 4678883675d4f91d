"""Read and write paths of the image gateway."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Optional, Tuple

from sqlalchemy.orm import Session

from .cache import CacheWriter
from .codec import decode_image, encode_image, is_supported_format
from .config import Settings
from .errors import UnsupportedFormatError
from .paths import parse_size_directive, resolve_path
from .store import Document, DocumentStore
from .transform import apply_transform, shrink_to_fit

logger = logging.getLogger(__name__)

IGNORED_NAMES = frozenset({"favicon.ico"})


class ImageGateway:
    """Serve stored images, resized on demand, and accept new uploads."""

    def __init__(
        self,
        settings: Settings,
        *,
        store: Optional[DocumentStore] = None,
        cache: Optional[CacheWriter] = None,
    ) -> None:
        self.settings = settings
        self.store = store or DocumentStore()
        self.cache = cache or CacheWriter(settings.cache_folder)

    @staticmethod
    def is_ignored(request_path: str) -> bool:
        name, _ = resolve_path(request_path)
        return name in IGNORED_NAMES

    def _bounded(self, width: int, height: int) -> Tuple[int, int]:
        limit = self.settings.max_variant_size
        if width > limit or height > limit:
            logger.info(
                "Clamping requested variant size",
                extra={"width": width, "height": height, "limit": limit},
            )
        return min(width, limit), min(height, limit)

    def render(self, session: Session, request_path: str, sink: BinaryIO) -> Document:
        """
        Write the image addressed by ``request_path`` into ``sink``.

        When the leaf name carries a size directive the stored original is
        decoded, transformed and re-encoded in its own format; otherwise the
        stored bytes are passed through. Either way the output is mirrored into
        the cache tree under the full request path.

        Raises NotFoundError, DecodeError, UnsupportedFormatError, EncodeError,
        CacheDirError or InvalidPathError.
        """
        raw_name, path = resolve_path(request_path)
        name, directive = parse_size_directive(raw_name)
        document = self.store.find(session, name, path)

        with self.cache.open(request_path, sink) as writer:
            if directive is None:
                writer.write(document.binary)
            else:
                origin, format_tag = decode_image(document.binary)
                width, height = self._bounded(directive.width, directive.height)
                image = apply_transform(origin, width, height, directive.mode)
                encode_image(writer, image, format_tag)

        logger.info(
            "Served image",
            extra={
                "image_name": name,
                "path": path,
                "directive": directive._asdict() if directive else None,
            },
        )
        return document

    def store_upload(
        self,
        session: Session,
        request_path: str,
        body: bytes,
        content_type: Optional[str] = None,
    ) -> Document:
        """
        Decode an upload, downsize it to the configured bounds and persist it.

        The document keeps its previous content type when the upload carries
        none. Raises DecodeError, UnsupportedFormatError, EncodeError or
        StoreError.
        """
        name, path = resolve_path(request_path)
        document = self.store.find_or_new(session, name, path)

        origin, format_tag = decode_image(body)
        if not is_supported_format(format_tag):
            raise UnsupportedFormatError(f"unknown format when writing {format_tag!r}")

        image = shrink_to_fit(origin, self.settings.stored_width, self.settings.stored_height)
        if image is not origin:
            logger.info(
                "Downsized upload to stored bounds",
                extra={"image_name": name, "source_size": origin.size, "stored_size": image.size},
            )

        buffer = io.BytesIO()
        encode_image(buffer, image, format_tag)
        document.binary = buffer.getvalue()
        if content_type:
            document.content_type = content_type

        self.store.save(session, document)
        logger.info(
            "Stored image",
            extra={"image_name": name, "path": path, "format": format_tag, "bytes": len(document.binary)},
        )
        return document
