import io

import pytest
from PIL import Image

from socratic_attachments import (
    AttachmentError, compress_image, decode_data_url, image_attachment_from_file,
)


def _png_bytes(size, mode="RGBA"):
    buffer = io.BytesIO()
    Image.new(mode, size, (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_wide_images_are_scaled_to_max_width() -> None:
    data_url = compress_image(_png_bytes((2048, 1024)))

    assert data_url.startswith("data:image/jpeg;base64,")
    with Image.open(io.BytesIO(decode_data_url(data_url))) as image:
        assert image.format == "JPEG"
        assert image.size == (1024, 512)


def test_small_images_keep_their_size() -> None:
    data_url = compress_image(_png_bytes((300, 200), mode="RGB"), max_width=1024)

    with Image.open(io.BytesIO(decode_data_url(data_url))) as image:
        assert image.size == (300, 200)


def test_unreadable_bytes_raise() -> None:
    with pytest.raises(AttachmentError):
        compress_image(b"definitely not an image")
    with pytest.raises(AttachmentError):
        decode_data_url("https://example.com/a.png")


def test_attachment_from_file(tmp_path) -> None:
    path = tmp_path / "sketch.png"
    path.write_bytes(_png_bytes((64, 64)))

    attachment = image_attachment_from_file(path, caption="First sketch")

    assert attachment.name == "sketch.png"
    assert attachment.mime_type == "image/jpeg"
    assert attachment.size == path.stat().st_size
    assert attachment.caption == "First sketch"
