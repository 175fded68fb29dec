"""Image normalization for menu photos sent to the vision model."""
import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

JPEG_MEDIA_TYPE = "image/jpeg"


class ImageEncodingError(ValueError):
    """Raw bytes could not be decoded or re-encoded as JPEG."""

    pass


def encode_image(data: bytes, quality: int = 70, max_width: int = 1920) -> str:
    """
    Re-encode a menu photo as JPEG and return it base64 encoded.

    Args:
        data: Raw image bytes in any format Pillow can read
        quality: JPEG quality (1-95)
        max_width: Photos wider than this are downscaled, keeping aspect ratio

    Returns:
        Standard base64 string of the JPEG bytes

    Raises:
        ImageEncodingError: If data is empty or not a readable image
    """
    if not data:
        raise ImageEncodingError("Image is empty")

    try:
        with Image.open(io.BytesIO(data)) as img:
            # Convert RGBA/P/L etc. to RGB, flattening transparency onto white
            if img.mode in ("RGBA", "LA") or (
                img.mode == "P" and "transparency" in img.info
            ):
                rgba = img.convert("RGBA")
                rgb_img = Image.new("RGB", rgba.size, (255, 255, 255))
                rgb_img.paste(rgba, mask=rgba.split()[3])
                img = rgb_img
            elif img.mode != "RGB":
                img = img.convert("RGB")

            if img.width > max_width:
                ratio = max_width / img.width
                new_height = max(1, int(img.height * ratio))
                img = img.resize((max_width, new_height), Image.Resampling.LANCZOS)

            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageEncodingError(f"Could not encode image: {e}") from e

    encoded = base64.standard_b64encode(buffer.getvalue()).decode("utf-8")
    logger.debug("Encoded menu photo: %d bytes in, %d base64 chars out", len(data), len(encoded))
    return encoded
