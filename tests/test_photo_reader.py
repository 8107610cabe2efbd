"""
Tests for photo reading and format checks.
"""

import pytest

from unearthed.core.exceptions import UnsupportedImageException
from unearthed.data_providers.photo_reader import decode_photo, read_photos, sniff_mime


def test_sniff_mime(png_bytes, jpeg_bytes):
    assert sniff_mime(png_bytes) == "image/png"
    assert sniff_mime(jpeg_bytes) == "image/jpeg"


@pytest.mark.parametrize("data", [b"GIF89a....", b"", b"%PDF-1.7", b"BM\x00\x00"])
def test_sniff_mime_rejects_other_formats(data):
    with pytest.raises(UnsupportedImageException):
        sniff_mime(data)


def test_decode_photo_from_path(tmp_path, jpeg_bytes):
    path = tmp_path / "ring.jpg"
    path.write_bytes(jpeg_bytes)

    photo = decode_photo(str(path))

    assert photo.mime == "image/jpeg"
    assert photo.data == jpeg_bytes
    assert photo.source == "ring.jpg"


@pytest.mark.asyncio
async def test_read_photos_keeps_order_and_drops_failures(tmp_path, png_bytes, image_factory):
    gif = image_factory(fmt="GIF")
    broken_png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
    second = image_factory(10, 20, fmt="JPEG")

    photos = await read_photos([
        png_bytes,
        gif,
        str(tmp_path / "missing.png"),
        broken_png,
        second,
    ])

    assert [p.mime for p in photos] == ["image/png", "image/jpeg"]
    assert photos[0].data == png_bytes
    assert photos[1].data == second


@pytest.mark.asyncio
async def test_read_photos_empty():
    assert await read_photos([]) == []
