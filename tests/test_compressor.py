"""
Tests for client-side image compression.

Tests cover:
- Resize to the configured longest side
- Re-encoding to WebP with a renamed file
- Size envelope on a large noisy JPEG
- Fallback to the original bytes on undecodable input
"""

import io
import random

import pytest
from PIL import Image

from app.client.compressor import (
    CompressionOptions,
    CompressionPreset,
    ImageFile,
    compress_image,
)


# ── Test Image Helpers ───────────────────────────────────────


def _make_jpeg(width, height, color=(0, 128, 255), quality=95):
    img = Image.new('RGB', (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format='JPEG', quality=quality)
    return buf.getvalue()


def _make_noise_jpeg(width, height, seed=7, quality=95, subsampling=-1):
    """Random noise barely compresses, so the JPEG ends up several MB."""
    rng = random.Random(seed)
    img = Image.frombytes('RGB', (width, height), rng.randbytes(width * height * 3))
    buf = io.BytesIO()
    img.save(buf, format='JPEG', quality=quality, subsampling=subsampling)
    return buf.getvalue()


def _make_rgba_png(width, height):
    img = Image.new('RGBA', (width, height), (255, 0, 0, 128))
    buf = io.BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()


def _open(data):
    return Image.open(io.BytesIO(data))


class TestCompressImage:

    def test_resizes_and_converts_to_webp(self):
        src = ImageFile(_make_jpeg(4000, 2000), 'holiday.photo.jpg', 'image/jpeg')
        out = compress_image(src, CompressionPreset.ABOUT)

        assert out.content_type == 'image/webp'
        assert out.filename == 'holiday.photo.webp'
        assert (out.width, out.height) == (1920, 960)
        with _open(out.data) as img:
            assert img.format == 'WEBP'
            assert img.size == (1920, 960)

    def test_small_image_keeps_dimensions(self):
        src = ImageFile(_make_jpeg(300, 200), 'small.jpg', 'image/jpeg')
        out = compress_image(src, CompressionPreset.AVATAR)
        assert (out.width, out.height) == (300, 200)

    def test_transparency_is_kept_for_webp(self):
        src = ImageFile(_make_rgba_png(64, 64), 'badge.png', 'image/png')
        out = compress_image(src, CompressionPreset.REVIEW)
        with _open(out.data) as img:
            assert img.mode == 'RGBA'

    def test_jpeg_target_flattens_alpha(self):
        options = CompressionOptions(max_size_mb=1, max_width_or_height=100, target_format='image/jpeg')
        src = ImageFile(_make_rgba_png(64, 64), 'badge.png', 'image/png')
        out = compress_image(src, options)
        assert out.filename == 'badge.jpg'
        with _open(out.data) as img:
            assert img.format == 'JPEG'
            assert img.mode == 'RGB'

    def test_large_jpeg_fits_envelope(self):
        # full-quality 4:4:4 noise, well past 10 MB like a raw camera export
        data = _make_noise_jpeg(3200, 2400, quality=100, subsampling=0)
        assert len(data) >= 10 * 1024 * 1024

        options = CompressionOptions(max_size_mb=2, max_width_or_height=1600)
        out = compress_image(ImageFile(data, 'camera.jpg', 'image/jpeg'), options)

        assert len(out.data) <= 2 * 1024 * 1024 * 1.1
        assert max(out.width, out.height) <= 1600
        with _open(out.data) as img:
            assert max(img.size) <= 1600


class TestFallback:

    def test_undecodable_input_returns_identical_bytes(self):
        data = b'definitely not an image' * 100
        src = ImageFile(data, 'broken.jpg', 'image/jpeg')

        out = compress_image(src, CompressionPreset.COVER)

        assert out is src
        assert out.data == data
        assert out.filename == 'broken.jpg'

    def test_truncated_jpeg_falls_back(self):
        data = _make_jpeg(200, 200)[:100]
        out = compress_image(ImageFile(data, 'cut.jpg', 'image/jpeg'))
        assert out.data == data

    def test_unsupported_target_format_falls_back(self):
        options = CompressionOptions(max_size_mb=1, max_width_or_height=100, target_format='image/heic')
        src = ImageFile(_make_jpeg(50, 50), 'a.jpg', 'image/jpeg')
        assert compress_image(src, options) is src


@pytest.mark.parametrize('preset, size_mb, side', [
    (CompressionPreset.COVER, 4, 3840),
    (CompressionPreset.PROMOTION, 1.8, 1600),
    (CompressionPreset.AVATAR, 0.5, 600),
])
def test_presets(preset, size_mb, side):
    assert preset.value.max_size_mb == size_mb
    assert preset.value.max_width_or_height == side
    assert preset.value.target_format == 'image/webp'
