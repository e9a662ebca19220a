"""Media generation for wip-bot."""

from wipbot.media.images import RenderedImage, create_text_image, render_numbered

__all__ = ["RenderedImage", "create_text_image", "render_numbered"]
