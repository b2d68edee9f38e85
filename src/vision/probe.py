import os
from dataclasses import dataclass
from typing import Optional

import cv2

from src.utils.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class VideoProbe:
    fps: float
    frame_count: int
    width: int
    height: int

    @property
    def duration(self) -> float:
        return self.frame_count / self.fps if self.fps else 0.0

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


def probe_video(video_path: str) -> Optional[VideoProbe]:
    """
    Reads container metadata of an encoded video.

    Returns None when the file is missing or OpenCV cannot decode it.
    """
    if not os.path.exists(video_path):
        logger.error(f"❌ Video not found: {video_path}")
        return None

    cap = cv2.VideoCapture(video_path)
    try:
        if not cap.isOpened():
            logger.warning(f"⚠️ Could not open video file: {video_path}")
            return None

        fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    finally:
        cap.release()

    if fps <= 0 or frame_count <= 0:
        logger.warning(f"⚠️ Video reports no usable timing: {video_path}")
        return None

    probe = VideoProbe(fps=fps, frame_count=frame_count, width=width, height=height)
    logger.info(
        f"📹 Probed '{os.path.basename(video_path)}': {probe.resolution} | "
        f"{fps:.2f} FPS | {probe.duration:.2f}s"
    )
    return probe
