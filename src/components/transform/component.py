"""
Transform cache - content-addressed store of derived images.

Layout: flat directory of `<sha256(canonical request)>.<format>` files.

Invariants:
- A published entry is immutable and a pure function of its request
- Entries appear under their final name only once fully written
  (temp file in the same directory, fsync, os.replace)
- At most one computation per key is in flight; concurrent callers await it
- A failed or cancelled computation leaves no entry behind
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from src.components.paths import ResolvedPath
from src.core.errors import NotFoundError, TransformError

from .models import DEFAULT_FIT, TransformOptions, TransformRequest
from .ports import ImageTransformerPort

logger = logging.getLogger(__name__)

PARTIAL_PREFIX = ".tmp-"
PARTIAL_SUFFIX = ".part"
THUMBNAIL_WIDTH = 300


class TransformCache:
    """Resolves transform requests to published derived files."""

    def __init__(self, cache_root: str | Path, transformer: ImageTransformerPort) -> None:
        self.cache_root = Path(cache_root)
        self._transformer = transformer
        self._inflight: dict[str, asyncio.Task[Path]] = {}

    def entry_path(self, request: TransformRequest) -> Path:
        return self.cache_root / request.filename

    def inflight_count(self) -> int:
        return len(self._inflight)

    async def resolve(self, source: ResolvedPath, options: TransformOptions) -> Path:
        """
        Return the derived file for (source, options), building it if needed.

        Raises:
            TransformError: Backend rejected the source or the write failed
            NotFoundError: Source vanished before it could be read
        """
        request = TransformRequest(source=source.relative, options=options)
        target = self.entry_path(request)

        if await asyncio.to_thread(target.is_file):
            logger.debug("Transform cache hit %s", target.name)
            return target

        key = request.cache_key
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._build(request, source.absolute, target))
            self._inflight[key] = task
            task.add_done_callback(lambda done, k=key: self._finish(k, done))
        else:
            logger.debug("Joining in-flight transform %s", key)

        # A caller going away must not cancel work other callers share.
        return await asyncio.shield(task)

    async def thumbnail(self, source: ResolvedPath, width: int = THUMBNAIL_WIDTH) -> Path:
        return await self.resolve(
            source, TransformOptions(width=width, fit=DEFAULT_FIT, format="webp")
        )

    def _finish(self, key: str, task: asyncio.Task[Path]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, (TransformError, NotFoundError)):
            logger.error("Transform %s failed", key, exc_info=exc)

    async def _build(self, request: TransformRequest, source: Path, target: Path) -> Path:
        try:
            data = await asyncio.to_thread(source.read_bytes)
        except FileNotFoundError as exc:
            raise NotFoundError(f"Source missing: {request.source}") from exc
        except OSError as exc:
            raise TransformError(f"Could not read {request.source}: {exc}") from exc

        output = await asyncio.to_thread(self._transformer.transform, data, request.options)

        try:
            await asyncio.to_thread(self._publish, target, output)
        except OSError as exc:
            raise TransformError(f"Could not write {target.name}: {exc}") from exc

        logger.info(
            "Published transform %s (%s, %d bytes)", target.name, request.source, len(output)
        )
        return target

    def _publish(self, target: Path, data: bytes) -> None:
        self.cache_root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.cache_root, prefix=PARTIAL_PREFIX, suffix=PARTIAL_SUFFIX
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, target)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def purge_partials(self) -> int:
        """
        Delete temp files left by interrupted builds.

        Only call while no build is running (startup, maintenance).
        """
        if not self.cache_root.is_dir():
            return 0
        removed = 0
        for path in self.cache_root.glob(f"{PARTIAL_PREFIX}*{PARTIAL_SUFFIX}"):
            path.unlink(missing_ok=True)
            removed += 1
        if removed:
            logger.info("Removed %d partial transform file(s) from %s", removed, self.cache_root)
        return removed
