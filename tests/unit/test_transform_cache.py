"""
Tests for the transform cache.

- Equivalent requests share one cache key
- Concurrent identical requests run the transformer once
- Failed builds leave no entry and can be retried
- Entries are published atomically; partial files are purgeable
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from src.components.paths import PathResolver
from src.components.transform import (
    PARTIAL_SUFFIX,
    TransformCache,
    TransformOptions,
    TransformRequest,
)
from src.core.errors import NotFoundError, TransformError, ValidationError

# --- Mock Transformer ---


class CountingTransformer:
    """Returns a deterministic payload and counts calls; optionally blocks or fails."""

    def __init__(self, *, fail: Exception | None = None) -> None:
        self.calls = 0
        self.fail = fail
        self.gate = threading.Event()
        self.gate.set()
        self._lock = threading.Lock()

    def transform(self, source: bytes, options: TransformOptions) -> bytes:
        with self._lock:
            self.calls += 1
        self.gate.wait(timeout=5)
        if self.fail is not None:
            raise self.fail
        return f"{options.format}:{options.width}x{options.height}:".encode() + source[:8]


# --- Fixtures ---


@pytest.fixture
def source_file(storage_root: Path, png_bytes: bytes) -> Path:
    path = storage_root / "public" / "photo.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def resolver(storage_root: Path) -> PathResolver:
    return PathResolver(storage_root)


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache"


def cache_files(cache_root: Path) -> list[Path]:
    return sorted(cache_root.iterdir()) if cache_root.exists() else []


# --- Option Parsing ---


class TestTransformOptions:
    """Query value normalisation."""

    def test_defaults(self) -> None:
        opts = TransformOptions.parse()
        assert (opts.width, opts.height, opts.fit, opts.format) == (None, None, "cover", "webp")

    @pytest.mark.parametrize("raw", ["abc", "0", "-10", "", "1.5", None])
    def test_bad_dimension_is_absent(self, raw: str | None) -> None:
        assert TransformOptions.parse(width=raw).width is None

    def test_overlong_dimension_is_absent(self) -> None:
        opts = TransformOptions.parse(width="9" * 5000, height="0" * 19 + "1")
        assert (opts.width, opts.height) == (None, None)

    def test_dimension_above_max_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TransformOptions.parse(width="5000", max_dimension=4096)

    def test_format_alias_and_case(self) -> None:
        assert TransformOptions.parse(format="JPG").format == "jpeg"
        assert TransformOptions.parse(format="tif").format == "tiff"

    def test_unknown_format_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TransformOptions.parse(format="bmp")

    def test_unknown_fit_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TransformOptions.parse(width="10", fit="squash")

    def test_fit_ignored_without_dimensions(self) -> None:
        assert TransformOptions.parse(fit="fill").fit == "cover"

    def test_media_type(self) -> None:
        assert TransformOptions.parse(format="png").media_type == "image/png"


class TestCacheKey:
    """Canonical request hashing."""

    def test_explicit_defaults_match_omitted(self) -> None:
        a = TransformRequest("public/a.png", TransformOptions.parse(width="100"))
        b = TransformRequest(
            "public/a.png", TransformOptions.parse(width="100", fit="cover", format="webp")
        )
        assert a.cache_key == b.cache_key

    def test_width_changes_key(self) -> None:
        a = TransformRequest("public/a.png", TransformOptions.parse(width="100"))
        b = TransformRequest("public/a.png", TransformOptions.parse(width="101"))
        assert a.cache_key != b.cache_key

    def test_source_changes_key(self) -> None:
        opts = TransformOptions.parse(width="100")
        assert (
            TransformRequest("public/a.png", opts).cache_key
            != TransformRequest("public/b.png", opts).cache_key
        )

    def test_filename_has_format_extension(self) -> None:
        req = TransformRequest("public/a.png", TransformOptions.parse(format="png"))
        assert req.filename == f"{req.cache_key}.png"
        assert len(req.cache_key) == 64


# --- Cache Behaviour ---


class TestTransformCache:
    """Resolve, dedup and publish."""

    def test_miss_builds_then_hit_reuses(
        self, resolver: PathResolver, source_file: Path, cache_root: Path
    ) -> None:
        transformer = CountingTransformer()
        cache = TransformCache(cache_root, transformer)
        source = resolver.resolve("public/photo.png")
        opts = TransformOptions.parse(width="20")

        async def run() -> tuple[Path, Path]:
            return await cache.resolve(source, opts), await cache.resolve(source, opts)

        first, second = asyncio.run(run())

        assert first == second
        assert first.read_bytes().startswith(b"webp:20xNone:")
        assert transformer.calls == 1
        assert cache.inflight_count() == 0

    def test_concurrent_requests_build_once(
        self, resolver: PathResolver, source_file: Path, cache_root: Path
    ) -> None:
        transformer = CountingTransformer()
        transformer.gate.clear()
        cache = TransformCache(cache_root, transformer)
        source = resolver.resolve("public/photo.png")
        opts = TransformOptions.parse(width="20")

        async def run() -> list[Path]:
            tasks = [asyncio.create_task(cache.resolve(source, opts)) for _ in range(10)]
            await asyncio.sleep(0.2)
            assert cache.inflight_count() == 1
            transformer.gate.set()
            return await asyncio.gather(*tasks)

        results = asyncio.run(run())

        assert transformer.calls == 1
        assert len(set(results)) == 1
        assert [p.name for p in cache_files(cache_root)] == [results[0].name]

    def test_different_options_build_separately(
        self, resolver: PathResolver, source_file: Path, cache_root: Path
    ) -> None:
        transformer = CountingTransformer()
        cache = TransformCache(cache_root, transformer)
        source = resolver.resolve("public/photo.png")

        async def run() -> list[Path]:
            return await asyncio.gather(
                cache.resolve(source, TransformOptions.parse(width="20")),
                cache.resolve(source, TransformOptions.parse(width="21")),
            )

        a, b = asyncio.run(run())

        assert a != b
        assert transformer.calls == 2

    def test_failure_leaves_no_entry(
        self, resolver: PathResolver, source_file: Path, cache_root: Path
    ) -> None:
        transformer = CountingTransformer(fail=TransformError("corrupt"))
        cache = TransformCache(cache_root, transformer)
        source = resolver.resolve("public/photo.png")
        opts = TransformOptions.parse(width="20")

        with pytest.raises(TransformError):
            asyncio.run(cache.resolve(source, opts))

        assert cache_files(cache_root) == []
        assert cache.inflight_count() == 0

        # Not memoised: the next request tries again.
        transformer.fail = None
        path = asyncio.run(cache.resolve(source, opts))
        assert path.exists()
        assert transformer.calls == 2

    def test_failure_reaches_every_waiter(
        self, resolver: PathResolver, source_file: Path, cache_root: Path
    ) -> None:
        transformer = CountingTransformer(fail=TransformError("corrupt"))
        transformer.gate.clear()
        cache = TransformCache(cache_root, transformer)
        source = resolver.resolve("public/photo.png")
        opts = TransformOptions.parse(width="20")

        async def run() -> list[object]:
            tasks = [asyncio.create_task(cache.resolve(source, opts)) for _ in range(3)]
            await asyncio.sleep(0.2)
            transformer.gate.set()
            return await asyncio.gather(*tasks, return_exceptions=True)

        results = asyncio.run(run())

        assert transformer.calls == 1
        assert all(isinstance(r, TransformError) for r in results)

    def test_cancelled_caller_does_not_cancel_build(
        self, resolver: PathResolver, source_file: Path, cache_root: Path
    ) -> None:
        transformer = CountingTransformer()
        transformer.gate.clear()
        cache = TransformCache(cache_root, transformer)
        source = resolver.resolve("public/photo.png")
        opts = TransformOptions.parse(width="20")
        expected = cache.entry_path(TransformRequest(source.relative, opts))

        async def run() -> None:
            caller = asyncio.create_task(cache.resolve(source, opts))
            await asyncio.sleep(0.2)
            caller.cancel()
            with pytest.raises(asyncio.CancelledError):
                await caller
            transformer.gate.set()
            for _ in range(100):
                if cache.inflight_count() == 0:
                    break
                await asyncio.sleep(0.05)

        asyncio.run(run())

        assert expected.exists()
        assert cache.inflight_count() == 0

    def test_missing_source(self, resolver: PathResolver, cache_root: Path) -> None:
        cache = TransformCache(cache_root, CountingTransformer())
        source = resolver.resolve("public/gone.png")

        with pytest.raises(NotFoundError):
            asyncio.run(cache.resolve(source, TransformOptions.parse(width="20")))

    def test_thumbnail_defaults(
        self, resolver: PathResolver, source_file: Path, cache_root: Path
    ) -> None:
        cache = TransformCache(cache_root, CountingTransformer())
        path = asyncio.run(cache.thumbnail(resolver.resolve("public/photo.png")))
        assert path.suffix == ".webp"
        assert path.read_bytes().startswith(b"webp:300xNone:")


class TestPartialFiles:
    """Leftover temp files from interrupted builds."""

    def test_purge_removes_only_partials(self, cache_root: Path) -> None:
        cache_root.mkdir()
        (cache_root / f".tmp-abc{PARTIAL_SUFFIX}").write_bytes(b"half")
        (cache_root / f".tmp-def{PARTIAL_SUFFIX}").write_bytes(b"half")
        keep = cache_root / ("a" * 64 + ".webp")
        keep.write_bytes(b"done")

        cache = TransformCache(cache_root, CountingTransformer())

        assert cache.purge_partials() == 2
        assert cache_files(cache_root) == [keep]

    def test_purge_missing_directory(self, tmp_path: Path) -> None:
        assert TransformCache(tmp_path / "nope", CountingTransformer()).purge_partials() == 0

    def test_partials_never_served(
        self, resolver: PathResolver, source_file: Path, cache_root: Path
    ) -> None:
        """A temp file under the entry's name prefix is not a cache hit."""
        cache_root.mkdir()
        transformer = CountingTransformer()
        cache = TransformCache(cache_root, transformer)
        source = resolver.resolve("public/photo.png")
        opts = TransformOptions.parse(width="20")
        entry = cache.entry_path(TransformRequest(source.relative, opts))
        (cache_root / f".tmp-{entry.name}{PARTIAL_SUFFIX}").write_bytes(b"half")

        asyncio.run(cache.resolve(source, opts))

        assert transformer.calls == 1
        assert entry.read_bytes() != b"half"
