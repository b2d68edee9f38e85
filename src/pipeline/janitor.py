from pathlib import Path
from typing import Iterable, Optional

from src.utils.logger import get_logger

logger = get_logger()


class ResourceJanitor:
    """
    Best-effort removal of per-run temporary files.

    Never raises: a file that cannot be removed is logged and skipped, and a
    file that is already gone counts as cleaned. Calling it twice is harmless.
    """

    def cleanup(self, frame_files: Iterable[str], audio_file: Optional[str] = None) -> int:
        removed = 0
        for frame in frame_files:
            removed += self._remove(frame, "frame")
        if audio_file:
            removed += self._remove(audio_file, "audio")
        logger.info(f"🧹 Temporary files cleaned up ({removed} removed)")
        return removed

    def remove_outputs(self, *paths: Optional[str]) -> int:
        """Same policy for partial persistent outputs of a failed run."""
        removed = 0
        for path in paths:
            if path:
                removed += self._remove(path, "output")
        return removed

    @staticmethod
    def _remove(path: str, kind: str) -> int:
        try:
            Path(path).unlink()
            return 1
        except FileNotFoundError:
            return 0
        except OSError as e:
            logger.warning(f"⚠️ Could not delete {kind} file {path}: {e}")
            return 0
