"""
Animation curves and text layout shared by frame and thumbnail rendering.

Everything here is a pure function of its inputs so a frame can be
reproduced from (product, frame index, total frames) alone.
"""
import math
from typing import Callable, List

from src.core.errors import RenderError
from src.core.models import Platform

TITLE_AMPLITUDE = 20.0
PRICE_AMPLITUDE = 15.0
CTA_START = 0.66
CTA_SPAN = 1.0 - CTA_START
ELLIPSIS = "..."

PLATFORM_COLORS = {
    Platform.HOTMART.value: "#ff6b35",
    Platform.EDUZZ.value: "#4285f4",
    Platform.KIWIPAY.value: "#9c27b0",
}
DEFAULT_PLATFORM_COLOR = "#666666"


def frame_progress(frame_index: int, total_frames: int) -> float:
    """Normalized position of a frame in the sequence, in [0, 1)."""
    if total_frames <= 0:
        raise RenderError(f"total_frames must be positive, got {total_frames}")
    if not 0 <= frame_index < total_frames:
        raise RenderError(f"frame_index {frame_index} outside [0, {total_frames})")
    return frame_index / total_frames


def title_offset(progress: float) -> float:
    return TITLE_AMPLITUDE * math.sin(progress * 2 * math.pi)


def price_offset(progress: float) -> float:
    # A quarter period behind the title so the two lines never bob together
    return PRICE_AMPLITUDE * math.cos(progress * 2 * math.pi)


def cta_alpha(progress: float) -> float:
    if progress <= CTA_START:
        return 0.0
    return min(1.0, (progress - CTA_START) / CTA_SPAN)


def progress_bar_width(frame_index: int, total_frames: int, track_width: int) -> int:
    """
    Filled width of the bottom progress bar once this frame is on screen.
    Full track on the last frame.
    """
    frame_progress(frame_index, total_frames)
    return int(round(track_width * (frame_index + 1) / total_frames))


def platform_color(platform: str) -> str:
    return PLATFORM_COLORS.get(platform, DEFAULT_PLATFORM_COLOR)


def format_price(price) -> str:
    return f"R$ {float(price):.2f}"


def wrap_text(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Greedy line breaking.

    Words are accumulated until the next one would push the line past
    ``max_width``. A single word wider than ``max_width`` gets a line of its
    own and is left unbroken.
    """
    lines: List[str] = []
    current = ""

    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and measure(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate

    if current:
        lines.append(current)
    return lines


def truncate_lines(
    lines: List[str],
    max_lines: int,
    max_width: float,
    measure: Callable[[str], float],
) -> List[str]:
    """Drop lines that do not fit on the canvas and mark the cut with an ellipsis."""
    if len(lines) <= max_lines:
        return lines

    kept = lines[:max_lines]
    last = kept[-1]
    while last and measure(last + ELLIPSIS) > max_width:
        last = last[:-1].rstrip()
    kept[-1] = last + ELLIPSIS
    return kept
