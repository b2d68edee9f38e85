import asyncio
import re
import threading
from pathlib import Path
from typing import Callable, Optional, Sequence

from src.core.errors import EncodingError, GenerationCancelled
from src.core.models import AudioTrack, EncodeOptions

ProgressObserver = Callable[[float], None]

FRAME_NAME = re.compile(r"^(?P<prefix>.+_frame_)(?P<index>\d+)\.png$")


class CancellationToken:
    """
    Thread-safe flag a caller flips to abort a running generation.

    A token built with a ``parent`` also reports cancelled once the parent
    fires, so a run can cancel itself without touching the caller's token.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def raise_if_cancelled(self, stage: str = "generation") -> None:
        if self.cancelled:
            raise GenerationCancelled(f"Cancelled during {stage}")


def frame_file_name(video_id: str, index: int) -> str:
    return f"{video_id}_frame_{index:05d}.png"


def validate_frame_sequence(frame_files: Sequence[str]) -> str:
    """
    Checks that frames form one gap-free, duplicate-free run starting at 0,
    all in the same directory with the same prefix and digit width.

    Returns the printf-style pattern ffmpeg reads the sequence with.
    """
    if not frame_files:
        raise EncodingError("No frames to encode")

    first = Path(frame_files[0])
    match = FRAME_NAME.match(first.name)
    if not match:
        raise EncodingError(f"Unrecognized frame file name: {first.name}")
    prefix = match.group("prefix")
    width = len(match.group("index"))

    for expected, frame in enumerate(frame_files):
        path = Path(frame)
        match = FRAME_NAME.match(path.name)
        if (
            not match
            or path.parent != first.parent
            or match.group("prefix") != prefix
            or len(match.group("index")) != width
            or int(match.group("index")) != expected
        ):
            raise EncodingError(
                f"Frame sequence broken at position {expected}: got {path.name}"
            )

    return str(first.parent / f"{prefix}%0{width}d.png")


class Encoder:
    """
    Abstract interface for muxing an ordered frame sequence with one audio
    track into a single video file.
    """

    def encode(
        self,
        frame_files: Sequence[str],
        audio_track: AudioTrack,
        output_path: str,
        options: EncodeOptions,
        progress: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Encodes the frames (strictly in the given order) and the audio.

        Args:
            frame_files: Frame images, index 0 first, no gaps or repeats.
            audio_track: Narration to mux alongside the frames.
            output_path: Final video location; only written on success.
            options: Codec, framerate and container parameters.
            progress: Optional observer called with fractions in [0, 1].
            cancel_token: Optional token; firing it aborts the encode.

        Returns:
            The path of the encoded video.

        Raises:
            EncodingError: The encoder failed or the frame order is broken.
            GenerationCancelled: The token fired while encoding.
        """
        raise NotImplementedError("Subclasses must implement encode()")

    async def encode_async(
        self,
        frame_files: Sequence[str],
        audio_track: AudioTrack,
        output_path: str,
        options: EncodeOptions,
        progress: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        return await asyncio.to_thread(
            self.encode,
            frame_files,
            audio_track,
            output_path,
            options,
            progress=progress,
            cancel_token=cancel_token,
        )


def notify(progress: Optional[ProgressObserver], fraction: float, logger) -> None:
    """Forward a fraction to the observer; an observer failure never aborts encoding."""
    if progress is None:
        return
    try:
        progress(fraction)
    except Exception as e:
        logger.warning(f"⚠️ Progress observer raised: {e}")
