from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.utils.logger import get_logger

logger = get_logger()


class VideoLibrary:
    """Read-only view of the finished videos sitting in the output root."""

    def __init__(self, output_root: str):
        self.output_root = Path(output_root)

    def list_videos(self) -> List[Dict[str, Any]]:
        """Every ``.mp4`` in the output root, newest first."""
        if not self.output_root.is_dir():
            return []

        videos = []
        for path in self.output_root.glob("*.mp4"):
            try:
                stats = path.stat()
            except OSError as e:
                logger.warning(f"⚠️ Skipping unreadable video {path}: {e}")
                continue
            videos.append(
                {
                    "id": path.stem,
                    "filename": path.name,
                    "path": str(path),
                    "size": stats.st_size,
                    "created_at": datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc).isoformat(),
                    "thumbnail_path": self._thumbnail_for(path),
                }
            )

        return sorted(videos, key=lambda v: v["created_at"], reverse=True)

    def get(self, video_id: str) -> Optional[Dict[str, Any]]:
        for video in self.list_videos():
            if video["id"] == video_id:
                return video
        return None

    @staticmethod
    def _thumbnail_for(video: Path) -> Optional[str]:
        thumb = video.with_name(f"{video.stem}_thumbnail.jpg")
        return str(thumb) if thumb.exists() else None
