from typing import Optional

from PIL import Image

from src.core.errors import RenderError, StorageError
from src.core.models import Product, RenderFrame
from src.render.canvas import Canvas
from src.render.layout import (
    cta_alpha,
    format_price,
    frame_progress,
    platform_color,
    price_offset,
    progress_bar_width,
    title_offset,
)

CANVAS_WIDTH = 1080
CANVAS_HEIGHT = 1920
CENTER_X = CANVAS_WIDTH // 2

GRADIENT_TOP = "#667eea"
GRADIENT_BOTTOM = "#764ba2"

TITLE_BASE_Y = 300
TITLE_SIZE = 48
TITLE_MAX_WIDTH = 900
TITLE_LINE_HEIGHT = 60
TITLE_MAX_LINES = 4

PRICE_BASE_Y = 600
PRICE_SIZE = 72
PRICE_COLOR = "#ffff00"

BADGE_BOX = (40, 100, 200, 60)
BADGE_TEXT_POS = (140, 140)
BADGE_TEXT_SIZE = 24

CTA_BOX = (140, 1400, 800, 120)
CTA_COLOR = "#ff4444"
CTA_TEXT = "CLIQUE NO LINK!"
CTA_TEXT_POS = (CENTER_X, 1470)
CTA_TEXT_SIZE = 36

BAR_X = 40
BAR_Y = 1800
BAR_TRACK_WIDTH = 1000
BAR_HEIGHT = 10

WHITE = "#ffffff"


class FrameComposer:
    """
    Renders one still of the product animation.

    Output depends only on (product, frame_index, total_frames): the title
    and price bob on a sine/cosine of the progress, the call-to-action fades
    in over the final third and the progress bar grows along the bottom.
    """

    def __init__(self, font_path: Optional[str] = None):
        self.font_path = font_path

    def new_canvas(self) -> Canvas:
        return Canvas(CANVAS_WIDTH, CANVAS_HEIGHT, font_path=self.font_path)

    def paint_base(self, canvas: Canvas, product: Product, progress: float) -> None:
        """Background, title, price and platform badge at a given progress."""
        canvas.draw_gradient(GRADIENT_TOP, GRADIENT_BOTTOM)

        canvas.fill_wrapped_text(
            product.title,
            CENTER_X,
            TITLE_BASE_Y + title_offset(progress),
            TITLE_MAX_WIDTH,
            TITLE_LINE_HEIGHT,
            TITLE_SIZE,
            WHITE,
            max_lines=TITLE_MAX_LINES,
        )

        canvas.fill_text(
            format_price(product.price),
            CENTER_X,
            PRICE_BASE_Y + price_offset(progress),
            PRICE_SIZE,
            PRICE_COLOR,
        )

        x, y, w, h = BADGE_BOX
        canvas.fill_rect(x, y, w, h, platform_color(product.platform))
        canvas.fill_text(product.platform, *BADGE_TEXT_POS, BADGE_TEXT_SIZE, WHITE)

    def render_frame(self, product: Product, frame_index: int, total_frames: int) -> RenderFrame:
        progress = frame_progress(frame_index, total_frames)

        try:
            canvas = self.new_canvas()
            self.paint_base(canvas, product, progress)

            alpha = cta_alpha(progress)
            if alpha > 0:
                x, y, w, h = CTA_BOX
                canvas.fill_rect(x, y, w, h, CTA_COLOR, alpha=alpha)
                canvas.fill_text(CTA_TEXT, *CTA_TEXT_POS, CTA_TEXT_SIZE, WHITE, alpha=alpha)

            bar = progress_bar_width(frame_index, total_frames, BAR_TRACK_WIDTH)
            canvas.fill_rect(BAR_X, BAR_Y, bar, BAR_HEIGHT, WHITE)
        except (OSError, ValueError, TypeError) as e:
            raise RenderError(f"Failed to draw frame {frame_index}/{total_frames}: {e}") from e

        return RenderFrame(pixels=canvas.to_array(), frame_index=frame_index, total_frames=total_frames)

    def render_to_file(self, product: Product, frame_index: int, total_frames: int, path: str) -> str:
        frame = self.render_frame(product, frame_index, total_frames)
        write_png(frame, path)
        return path


def write_png(frame: RenderFrame, path: str) -> None:
    try:
        # scratch frames, favour speed over size
        Image.fromarray(frame.pixels).save(path, format="PNG", compress_level=1)
    except OSError as e:
        raise StorageError(f"Cannot write frame {frame.frame_index} to {path}: {e}") from e
