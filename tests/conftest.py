"""
Pytest configuration and shared fixtures for Open Annotate tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import io

import pytest
from PIL import Image


def encode_png(image):
    """Encode a PIL Image as PNG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes_factory():
    """
    Provide a factory building solid-colour PNG bytes.

    Returns:
        Callable (width, height, color) -> bytes
    """
    def factory(width=40, height=20, color=(0, 0, 255, 255)):
        return encode_png(Image.new("RGBA", (width, height), color))
    return factory


@pytest.fixture
def gradient_image():
    """
    Provide a 64x32 RGBA image with a horizontal gradient and a vertical ramp.

    Returns:
        PIL Image whose pixels differ across both axes
    """
    image = Image.new("RGBA", (64, 32))
    pixels = image.load()
    for y in range(image.height):
        for x in range(image.width):
            pixels[x, y] = (x * 4, y * 8, 255 - x * 4, 255)
    return image


@pytest.fixture
def sample_rgba_colors():
    """
    Provide a list of sample RGBA color tuples for testing.

    Returns:
        List of (R, G, B, A) tuples with common test colors
    """
    return [
        (255, 0, 0, 255),    # Red
        (0, 255, 0, 255),    # Green
        (0, 0, 255, 255),    # Blue
        (255, 255, 255, 255),  # White
        (0, 0, 0, 255),      # Black
        (128, 128, 128, 255),  # Gray
    ]
