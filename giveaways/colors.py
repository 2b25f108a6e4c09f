"""
Embed accent colour from the giveaway image
"""

import io
import logging

import requests
from PIL import Image, UnidentifiedImageError

from config import DEFAULT_EMBED_COLOR

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 8 * 1024 * 1024
SAMPLE_SIZE = (64, 64)


def compute_accent_color(url: str, timeout: float = 10.0) -> int:
    """
    Dominant colour of the image at url as 0xRRGGBB.

    The image is downscaled and quantized to a small palette; the most
    frequent palette entry wins.
    """
    with requests.get(url, timeout=timeout, stream=True) as response:
        response.raise_for_status()
        data = response.raw.read(MAX_IMAGE_BYTES + 1, decode_content=True)

    if len(data) > MAX_IMAGE_BYTES:
        raise ValueError(f"Image larger than {MAX_IMAGE_BYTES} bytes")

    with Image.open(io.BytesIO(data)) as image:
        sample = image.convert("RGB")
        sample.thumbnail(SAMPLE_SIZE)
        quantized = sample.quantize(colors=4)
        palette = quantized.getpalette()
        count, index = max(quantized.getcolors())

    r, g, b = palette[index * 3:index * 3 + 3]
    return (r << 16) + (g << 8) + b


def accent_color_for(url, timeout: float = 10.0) -> int:
    """Accent colour for an optional image URL; neutral colour when missing or unreadable"""
    if not url:
        return DEFAULT_EMBED_COLOR
    try:
        return compute_accent_color(url, timeout=timeout)
    except (requests.RequestException, UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"⚠️ Could not compute accent colour for {url}: {e}")
        return DEFAULT_EMBED_COLOR
