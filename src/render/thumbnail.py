from typing import Optional

from src.core.errors import RenderError, StorageError
from src.core.models import Product
from src.render.composer import CANVAS_HEIGHT, CENTER_X, FrameComposer
from src.utils.logger import get_logger

logger = get_logger()

# Rest pose of the animation: title on its base line, price at the bottom of its bob
THUMBNAIL_PROGRESS = 0.5

PLAY_CENTER = (CENTER_X, CANVAS_HEIGHT // 2)
PLAY_RADIUS = 80
PLAY_FILL = "#ffffff"
PLAY_ALPHA = 0.9
PLAY_TRIANGLE = [(520, 930), (520, 990), (570, 960)]
PLAY_TRIANGLE_COLOR = "#333333"


class ThumbnailRenderer:
    """Single still in the video's visual language with a play button on top."""

    def __init__(self, composer: Optional[FrameComposer] = None, quality: int = 90):
        self.composer = composer or FrameComposer()
        self.quality = quality

    def render_thumbnail(self, product: Product, output_path: str) -> str:
        try:
            canvas = self.composer.new_canvas()
            self.composer.paint_base(canvas, product, THUMBNAIL_PROGRESS)
            canvas.fill_circle(*PLAY_CENTER, PLAY_RADIUS, PLAY_FILL, alpha=PLAY_ALPHA)
            canvas.fill_polygon(PLAY_TRIANGLE, PLAY_TRIANGLE_COLOR)
        except (OSError, ValueError, TypeError) as e:
            raise RenderError(f"Failed to draw thumbnail for '{product.title}': {e}") from e

        try:
            canvas.save(output_path, format="JPEG", quality=self.quality)
        except OSError as e:
            raise StorageError(f"Cannot write thumbnail to {output_path}: {e}") from e

        logger.info(f"🖼️ Thumbnail generated: {output_path}")
        return output_path
