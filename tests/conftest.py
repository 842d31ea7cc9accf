from datetime import UTC, datetime
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from src.adapters.clock import FixedClock
from src.app_shell.config import DeliveryConfig

TEST_SECRET = "test-signing-secret-0123456789"
EPOCH = datetime(2025, 1, 1, tzinfo=UTC)


def make_png(size: tuple[int, int] = (40, 20), mode: str = "RGBA") -> bytes:
    color = (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)
    output = BytesIO()
    Image.new(mode, size, color).save(output, format="PNG")
    return output.getvalue()


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Storage root with empty public and private buckets."""
    root = tmp_path / "storage"
    (root / "public").mkdir(parents=True)
    (root / "private").mkdir(parents=True)
    return root


@pytest.fixture
def config(storage_root: Path) -> DeliveryConfig:
    return DeliveryConfig(
        storage_root=storage_root,
        signing_secret=TEST_SECRET,
        environment="test",
        max_transform_dimension=2000,
        stream_chunk_size=256,
    )


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock(EPOCH)


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()
