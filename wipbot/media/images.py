"""
Generated images for sticker and image bursts.

Renders a solid background with an optional centred caption and returns PNG
bytes ready for upload.
"""

import io
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont

from wipbot.auto_reply.content import COLOR_PAIRS, pick


# =============================================================================
# Constants
# =============================================================================

STICKER_SIZE = 256
FONT_NAME = "DejaVuSans.ttf"
PNG_MIME = "image/png"


@dataclass(frozen=True)
class RenderedImage:
    """PNG bytes plus the metadata Matrix wants in `info`."""
    data: bytes
    width: int
    height: int
    mimetype: str = PNG_MIME

    @property
    def info(self) -> dict:
        return {
            "mimetype": self.mimetype,
            "size": len(self.data),
            "w": self.width,
            "h": self.height,
        }


def _load_font(size: int) -> ImageFont.FreeTypeFont:
    """Load DejaVu Sans, falling back to Pillow's bundled font."""
    try:
        return ImageFont.truetype(FONT_NAME, size)
    except OSError:
        return ImageFont.load_default(size=size)


def create_text_image(
    text: str | None,
    background_color: str,
    foreground_color: str,
    width: int,
    height: int,
    font_size: int = 0,
) -> RenderedImage:
    """
    Render a caption on a solid background.

    Args:
        text: Caption to draw, or None for a plain image.
        background_color: Any colour Pillow understands.
        foreground_color: Caption colour.
        width: Image width in pixels.
        height: Image height in pixels.
        font_size: Font size in points, 0 picks one from the image size.

    Returns:
        The rendered PNG.
    """
    image = Image.new("RGB", (width, height), background_color)

    if text:
        draw = ImageDraw.Draw(image)
        font = _load_font(font_size or max(8, min(width, height) // 4))
        draw.text(
            (width / 2, height / 2),
            text,
            fill=foreground_color,
            font=font,
            anchor="mm",
        )

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return RenderedImage(data=buffer.getvalue(), width=width, height=height)


def render_numbered(text: str, index: int, width: int, height: int) -> RenderedImage:
    """Render a burst item, cycling through the colour table by index."""
    background, foreground = pick(COLOR_PAIRS, index)
    return create_text_image(text, background, foreground, width, height)
