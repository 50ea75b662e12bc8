"""
Image attachments for notes.

Images are downscaled and re-encoded as JPEG before they are stored, so a
session snapshot with photos stays small enough to persist on every change.
"""
import base64
import io
import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from socratic_types import ImageAttachment

logger = logging.getLogger(__name__)

COMPRESSED_MIME_TYPE = "image/jpeg"


class AttachmentError(ValueError):
    """Raised when attachment data cannot be decoded as an image."""


def _flatten(image):
    # JPEG has no alpha channel; composite transparent images onto white.
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return image.convert("RGB")


def compress_image(data: bytes, max_width=1024, quality=80) -> str:
    """
    Downscales and re-encodes an image as a JPEG data URL.

    Images narrower than ``max_width`` keep their size; wider ones are scaled
    down preserving the aspect ratio.

    Args:
        data (bytes): The raw image file contents.
        max_width (int): Maximum width in pixels of the stored image.
        quality (int): JPEG quality, 1-95.

    Returns:
        str: A ``data:image/jpeg;base64,...`` URL.

    Raises:
        AttachmentError: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            if image.width > max_width:
                height = max(1, round(image.height * max_width / image.width))
                image = image.resize((max_width, height), Image.Resampling.LANCZOS)
            image = _flatten(image)
    except (UnidentifiedImageError, OSError) as e:
        raise AttachmentError(f"could not read image: {e}") from e

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    logger.debug("Compressed image from %d to %d bytes", len(data), buffer.tell())
    return f"data:{COMPRESSED_MIME_TYPE};base64,{encoded}"


def image_attachment_from_file(path, caption=None) -> ImageAttachment:
    """
    Builds an ImageAttachment from an image file on disk.

    Args:
        path (str | Path): The image file.
        caption (str, optional): Caption shown under the image.

    Returns:
        ImageAttachment: The compressed attachment. ``size`` is the size of the
            original file.
    """
    path = Path(path)
    data = path.read_bytes()
    return ImageAttachment(
        data_url=compress_image(data),
        name=path.name,
        mime_type=COMPRESSED_MIME_TYPE,
        size=len(data),
        caption=caption,
    )


def decode_data_url(data_url: str) -> bytes:
    """Returns the raw bytes behind a base64 data URL."""
    header, _, payload = data_url.partition(",")
    if not header.startswith("data:") or ";base64" not in header:
        raise AttachmentError("not a base64 data URL")
    return base64.b64decode(payload)
