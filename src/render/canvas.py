from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont

from src.render.layout import truncate_lines, wrap_text
from src.utils.logger import get_logger

logger = get_logger()

BOLD_FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
]

Color = Tuple[int, int, int]


def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.FreeTypeFont:
    """Configured font, then a system bold font, then Pillow's bundled font."""
    candidates = [font_path] if font_path else []
    candidates += BOLD_FONT_CANDIDATES
    for path in candidates:
        if path and Path(path).exists():
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                logger.warning(f"⚠️ Could not load font {path}, trying next")
    return ImageFont.load_default(size=size)


def to_rgb(color) -> Color:
    if isinstance(color, str):
        return ImageColor.getrgb(color)[:3]
    return tuple(color[:3])


@lru_cache(maxsize=8)
def vertical_gradient(width: int, height: int, top: Color, bottom: Color) -> np.ndarray:
    start = np.array(top, dtype=np.float32)
    end = np.array(bottom, dtype=np.float32)
    t = np.linspace(0.0, 1.0, height, dtype=np.float32)[:, None]
    column = start + (end - start) * t
    pixels = np.repeat(column[:, None, :], width, axis=1)
    return np.round(pixels).astype(np.uint8)


class Canvas:
    """
    Minimal imperative drawing surface on top of Pillow.

    Fills take an ``alpha`` in [0, 1] and are blended over what is already
    drawn, the same way a 2D canvas ``globalAlpha`` behaves.
    """

    def __init__(self, width: int, height: int, font_path: Optional[str] = None):
        self.width = width
        self.height = height
        self.font_path = font_path
        self.image = Image.new("RGB", (width, height))
        self._draw = ImageDraw.Draw(self.image, "RGBA")
        # FreeType faces must not cross threads
        self._fonts = {}

    def font(self, size: int) -> ImageFont.FreeTypeFont:
        if size not in self._fonts:
            self._fonts[size] = load_font(size, self.font_path)
        return self._fonts[size]

    def draw_gradient(self, top, bottom) -> None:
        """Vertical two-stop linear gradient over the whole canvas."""
        pixels = vertical_gradient(self.width, self.height, to_rgb(top), to_rgb(bottom))
        self.image.paste(Image.fromarray(pixels))

    def fill_rect(self, x: float, y: float, width: float, height: float, color, alpha: float = 1.0) -> None:
        if alpha <= 0 or width <= 0 or height <= 0:
            return
        self._draw.rectangle(
            [x, y, x + width - 1, y + height - 1], fill=self._rgba(color, alpha)
        )

    def measure_text(self, text: str, size: int) -> float:
        return self._draw.textlength(text, font=self.font(size))

    def fill_text(self, text: str, x: float, y: float, size: int, color, alpha: float = 1.0) -> None:
        """Draw text horizontally centered on ``x`` with its baseline at ``y``."""
        if alpha <= 0 or not text:
            return
        self._draw.text((x, y), text, font=self.font(size), fill=self._rgba(color, alpha), anchor="ms")

    def fill_wrapped_text(
        self,
        text: str,
        x: float,
        y: float,
        max_width: float,
        line_height: float,
        size: int,
        color,
        max_lines: Optional[int] = None,
    ) -> List[str]:
        """Word-wrap, clip to ``max_lines`` and draw. Returns the drawn lines."""
        measure = lambda s: self.measure_text(s, size)  # noqa: E731
        lines = wrap_text(text, max_width, measure)
        if max_lines is not None:
            lines = truncate_lines(lines, max_lines, max_width, measure)
        for n, line in enumerate(lines):
            self.fill_text(line, x, y + n * line_height, size, color)
        return lines

    def fill_circle(self, cx: float, cy: float, radius: float, color, alpha: float = 1.0) -> None:
        if alpha <= 0:
            return
        self._draw.ellipse(
            [cx - radius, cy - radius, cx + radius, cy + radius], fill=self._rgba(color, alpha)
        )

    def fill_polygon(self, points: Sequence[Tuple[float, float]], color, alpha: float = 1.0) -> None:
        if alpha <= 0:
            return
        self._draw.polygon(list(points), fill=self._rgba(color, alpha))

    def to_array(self) -> np.ndarray:
        return np.asarray(self.image, dtype=np.uint8).copy()

    def save(self, path, format: str = "PNG", **params) -> None:
        self.image.save(path, format=format, **params)

    @staticmethod
    def _rgba(color, alpha: float) -> Tuple[int, int, int, int]:
        r, g, b = to_rgb(color)
        return r, g, b, int(round(255 * max(0.0, min(1.0, alpha))))
