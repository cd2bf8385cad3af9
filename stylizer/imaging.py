"""Image handling: shrink uploads before training and build side-by-side previews."""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_WIDTH = 1024
MAX_HEIGHT = 1024
JPEG_QUALITY = 90

# Errors Pillow raises for files it cannot or will not decode
_DECODE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError)


class ImageProcessingError(ValueError):
    """Raised when an uploaded file cannot be decoded or re-encoded."""


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Scale (width, height) down to fit the bounds, keeping the aspect ratio. Never upscales."""
    if width <= max_width and height <= max_height:
        return width, height
    ratio = min(max_width / width, max_height / height)
    return max(1, int(width * ratio)), max(1, int(height * ratio))


def resize_image(
    data: bytes,
    max_width: int = MAX_WIDTH,
    max_height: int = MAX_HEIGHT,
    quality: int = JPEG_QUALITY,
) -> bytes:
    """Return ``data`` re-encoded as JPEG, shrunk to fit ``max_width`` x ``max_height``."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        # Phone photos carry their rotation in EXIF
        image = ImageOps.exif_transpose(image)
    except _DECODE_ERRORS as e:
        raise ImageProcessingError("Failed to load image") from e

    width, height = fit_within(image.width, image.height, max_width, max_height)
    if (width, height) != image.size:
        image = image.resize((width, height), Image.LANCZOS)

    if image.mode != "RGB":
        image = image.convert("RGB")

    buf = io.BytesIO()
    try:
        image.save(buf, format="JPEG", quality=quality)
    except OSError as e:
        raise ImageProcessingError("Failed to create blob") from e

    logger.debug("Resized image to %dx%d (%d bytes)", width, height, buf.tell())
    return buf.getvalue()


def create_comparison_image(
    original: Image.Image,
    stylized: Image.Image,
    labels: tuple[str, str] | None = ("Original", "Stylized"),
    gap: int = 10,
) -> Image.Image:
    """Place the original and stylized portraits side by side at a shared height.

    The shorter portrait sets the height. With ``labels`` a caption strip is
    added below each image.
    """
    height = min(original.height, stylized.height)
    panels = [
        img.convert("RGB").resize((max(1, img.width * height // img.height), height), Image.LANCZOS)
        for img in (original, stylized)
    ]

    caption_h = 40 if labels else 0
    width = panels[0].width + gap + panels[1].width
    canvas = Image.new("RGB", (width, height + caption_h), "white")

    draw = ImageDraw.Draw(canvas)
    font = ImageFont.load_default(size=20)
    x = 0
    for i, panel in enumerate(panels):
        canvas.paste(panel, (x, 0))
        if labels:
            left, _, right, _ = draw.textbbox((0, 0), labels[i], font=font)
            draw.text((x + (panel.width - (right - left)) // 2, height + 8), labels[i], fill="black", font=font)
        x += panel.width + gap

    return canvas


def open_image(data: bytes) -> Image.Image:
    try:
        return Image.open(io.BytesIO(data)).convert("RGB")
    except _DECODE_ERRORS as e:
        raise ImageProcessingError("Failed to load image") from e
