"""Local-disk cache of binary contents.

Files are named ``<app>-<yyyyMMdd_HHmmss_SSS>.<ext>`` under a root directory.
Writes go through a temporary file and an atomic rename, so concurrent
writers of the same key leave one complete copy behind.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from jobstore.models.binary import BinaryInfo

logger = logging.getLogger(__name__)


class BinaryCache(Protocol):
    def put(self, key: str, content: bytes) -> Path: ...

    def exists(self, key: str) -> bool: ...

    def path(self, key: str) -> Path: ...

    def discard(self, key: str) -> bool: ...

    def delete(self, app_name: str) -> list[Path]: ...


def binary_cache_key(info: BinaryInfo) -> str:
    """File name for a binary, e.g. ``wordcount-20261018_101502_123.jar``."""
    stamp = info.upload_time.strftime("%Y%m%d_%H%M%S")
    millis = info.upload_time.microsecond // 1000
    return f"{info.app_name}-{stamp}_{millis:03d}.{info.binary_type.extension}"


class LocalFileCache:
    """BinaryCache backed by a flat directory."""

    def __init__(self, rootdir: str | Path):
        self.rootdir = Path(rootdir)

    def path(self, key: str) -> Path:
        """Absolute path of ``key``. Keys must name a file directly under the root."""
        if key in ("", ".", "..") or "/" in key or "\\" in key:
            raise ValueError(f"Invalid cache key: {key!r}")
        return (self.rootdir / key).absolute()

    def exists(self, key: str) -> bool:
        return self.path(key).is_file()

    def put(self, key: str, content: bytes) -> Path:
        target = self.path(key)
        self.rootdir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.rootdir, prefix=".", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Cached %s (%d bytes)", target, len(content))
        return target

    def discard(self, key: str) -> bool:
        """Remove a single entry. Returns whether a file was removed."""
        target = self.path(key)
        if not target.is_file():
            return False
        target.unlink(missing_ok=True)
        logger.debug("Discarded %s", target)
        return True

    def delete(self, app_name: str) -> list[Path]:
        """Remove every cached version of ``app_name``. Returns the removed paths."""
        if not self.rootdir.is_dir():
            return []
        pattern = re.compile(re.escape(app_name) + r"-\d{8}_\d{6}_\d{3}\.\w+")
        removed = []
        for entry in self.rootdir.iterdir():
            if entry.is_file() and pattern.fullmatch(entry.name):
                entry.unlink(missing_ok=True)
                removed.append(entry)
        if removed:
            logger.info("Removed %d cached binaries for %s", len(removed), app_name)
        return removed
