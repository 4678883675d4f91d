"""Population of the on-disk cache tree mirrored from served responses."""

from __future__ import annotations

import io
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

from .errors import CacheDirError, InvalidPathError

logger = logging.getLogger(__name__)

# Temporary files are created 0600; cache entries must stay readable by file servers.
CACHE_FILE_MODE = 0o644


class FanOutWriter(io.RawIOBase):
    """Writable stream that duplicates every write to each of its sinks."""

    def __init__(self, *sinks: BinaryIO) -> None:
        super().__init__()
        self._sinks = sinks

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        for sink in self._sinks:
            sink.write(data)
        return len(data)


class CacheWriter:
    """Mirror response bytes into files under ``cache_root``."""

    def __init__(self, cache_root: Path) -> None:
        self.cache_root = Path(os.path.abspath(cache_root))

    def path_for(self, request_path: str) -> Path:
        """
        Map a request path onto the cache tree.

        The path is normalised before joining, so dot segments cannot escape the
        root. Raises InvalidPathError if the result still lands outside it.
        """
        candidate = Path(os.path.abspath(os.path.normpath(f"{self.cache_root}/{request_path}")))
        if candidate == self.cache_root or self.cache_root not in candidate.parents:
            raise InvalidPathError(f"Invalid cache path for request {request_path!r}.")
        return candidate

    @contextmanager
    def open(self, request_path: str, response: BinaryIO) -> Iterator[FanOutWriter]:
        """
        Yield a writer feeding both ``response`` and the cache file for ``request_path``.

        Bytes land in a temporary file next to the target, which replaces the
        cache entry only once the block completes. Concurrent writers for the
        same path therefore never leave a partially written file behind. If the
        entry cannot be replaced (for instance a folder already sits at that
        path) the failure is logged and the response stands.
        """
        cache_path = self.path_for(request_path)
        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error(
                "Unable to create cache folder",
                extra={"cache_dir": str(cache_path.parent), "error": str(exc)},
            )
            raise CacheDirError("can not make cache folder") from exc

        try:
            handle = tempfile.NamedTemporaryFile(
                dir=cache_path.parent,
                prefix=f".{cache_path.name}.",
                suffix=".tmp",
                delete=False,
            )
        except OSError as exc:
            logger.error(
                "Unable to create cache file",
                extra={"cache_path": str(cache_path), "error": str(exc)},
            )
            raise CacheDirError("can not create cache file") from exc

        try:
            with handle:
                yield FanOutWriter(response, handle)
        except BaseException:
            Path(handle.name).unlink(missing_ok=True)
            raise

        try:
            os.chmod(handle.name, CACHE_FILE_MODE)
            os.replace(handle.name, cache_path)
        except OSError as exc:
            # The response is already complete; only the mirror is lost.
            Path(handle.name).unlink(missing_ok=True)
            logger.warning(
                "Unable to replace cache entry",
                extra={"cache_path": str(cache_path), "error": str(exc)},
            )
            return
        logger.debug("Cache entry written", extra={"cache_path": str(cache_path)})
