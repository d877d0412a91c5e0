"""Shared fixtures for image derivative tests."""

from pathlib import Path

import pytest

from image_derivatives.core.cache import CacheCoordinator
from image_derivatives.core.services import ImageDerivativeGenerator
from image_derivatives.testing.fakes import (
    FakeLogger,
    RecordingPipeline,
    create_test_image,
)

JPEG_WIDTH = 1280
JPEG_HEIGHT = 853
PNG_WIDTH = 815
PNG_HEIGHT = 400


@pytest.fixture(scope="session")
def jpeg_bytes() -> bytes:
    return create_test_image(JPEG_WIDTH, JPEG_HEIGHT, format="JPEG", quality=95)


@pytest.fixture(scope="session")
def png_bytes() -> bytes:
    return create_test_image(PNG_WIDTH, PNG_HEIGHT, format="PNG")


@pytest.fixture
def jpeg_path(tmp_path: Path, jpeg_bytes: bytes) -> Path:
    path = tmp_path / "bio-2017.jpg"
    path.write_bytes(jpeg_bytes)
    return path


@pytest.fixture
def png_path(tmp_path: Path, png_bytes: bytes) -> Path:
    path = tmp_path / "mascot.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "img"


@pytest.fixture
def pipeline() -> RecordingPipeline:
    return RecordingPipeline()


@pytest.fixture
def fake_logger() -> FakeLogger:
    return FakeLogger()


@pytest.fixture
def generator(pipeline, fake_logger) -> ImageDerivativeGenerator:
    return ImageDerivativeGenerator(
        pipeline=pipeline, cache=CacheCoordinator(), logger=fake_logger
    )
