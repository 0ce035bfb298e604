"""Test configuration and fixtures for lirum_convert.

This module provides:
- Pytest configuration (markers, codec availability checks)
- Synthetic image fixtures built with Pillow/numpy (no media files on disk)
- Service fixtures (ConversionService, FastAPI TestClient)
"""

from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image, features

from lirum_convert.common.pixel_buffer import PixelBuffer
from lirum_convert.common.settings import ConverterSettings
from lirum_convert.service import ConversionService

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "requires_avif: requires Pillow built with libavif",
    )
    config.addinivalue_line(
        "markers",
        "requires_libmagic: requires libmagic for content sniffing",
    )
    config.addinivalue_line(
        "markers",
        "integration: full round trips through the service or HTTP routes",
    )


def pytest_runtest_setup(item):
    """Skip codec-dependent tests when the codec is not part of this build."""
    if item.get_closest_marker("requires_avif") and not features.check("avif"):
        pytest.skip(
            "Pillow built without AVIF support. Install Pillow 11.3 or newer wheels.",
        )

    if item.get_closest_marker("requires_libmagic"):
        try:
            import magic

            _ = magic.Magic(mime=True)
        except (ImportError, OSError):
            pytest.skip(
                "libmagic not installed. "
                + "Install: brew install libmagic (macOS) or apt-get install libmagic1 (Linux)",
            )


# ============================================================================
# Synthetic Image Fixtures
# ============================================================================


def _encode(img: Image.Image, fmt: str, **kwargs: object) -> bytes:
    buf = BytesIO()
    img.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


@pytest.fixture
def image_bytes() -> Callable[..., bytes]:
    """Factory: encode a Pillow image into the given format."""
    return _encode


@pytest.fixture
def gradient_rgba() -> Image.Image:
    """64x48 RGBA gradient whose alpha falls off from left to right."""
    width, height = 64, 48
    xs = np.linspace(0, 255, width, dtype=np.uint8)
    ys = np.linspace(0, 255, height, dtype=np.uint8)

    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[..., 0] = xs[np.newaxis, :]
    arr[..., 1] = ys[:, np.newaxis]
    arr[..., 2] = 128
    arr[..., 3] = 255 - xs[np.newaxis, :]

    return Image.fromarray(arr)


@pytest.fixture
def red_image() -> Image.Image:
    """Opaque 100x50 solid red image."""
    return Image.new("RGB", (100, 50), color=(255, 0, 0))


@pytest.fixture
def red_png(red_image: Image.Image) -> bytes:
    return _encode(red_image, "PNG")


@pytest.fixture
def rgba_png(gradient_rgba: Image.Image) -> bytes:
    return _encode(gradient_rgba, "PNG")


@pytest.fixture
def tiff_bytes(gradient_rgba: Image.Image) -> bytes:
    return _encode(gradient_rgba, "TIFF")


@pytest.fixture
def heic_bytes(red_image: Image.Image) -> bytes:
    """HEIC written through pillow-heif (registered by lirum_convert.codecs)."""
    return _encode(red_image, "HEIF", quality=90)


@pytest.fixture
def make_buffer() -> Callable[..., PixelBuffer]:
    """Factory: solid-colour PixelBuffer of the given size and RGBA value."""

    def _make(
        width: int = 4,
        height: int = 3,
        rgba: tuple[int, int, int, int] = (255, 0, 0, 255),
    ) -> PixelBuffer:
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[...] = rgba
        return PixelBuffer.from_array(arr)

    return _make


@pytest.fixture
def source_file(tmp_path: Path, red_png: bytes) -> Path:
    """The red PNG written to disk."""
    path = tmp_path / "red.png"
    _ = path.write_bytes(red_png)
    return path


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def settings() -> ConverterSettings:
    return ConverterSettings()


@pytest.fixture
def service(settings: ConverterSettings) -> ConversionService:
    """Provide a ConversionService with default decoders and settings."""
    return ConversionService(settings=settings)


@pytest.fixture
def api_client(service: ConversionService) -> TestClient:
    """Provide FastAPI TestClient for route testing."""
    from fastapi import FastAPI

    from lirum_convert import create_router

    app = FastAPI()
    app.include_router(create_router(service))

    return TestClient(app)
