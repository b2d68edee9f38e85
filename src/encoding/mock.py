from pathlib import Path
from typing import List, Optional, Sequence

from src.core.errors import EncodingError
from src.core.models import AudioTrack, EncodeOptions
from src.encoding.base import (
    CancellationToken,
    Encoder,
    ProgressObserver,
    notify,
    validate_frame_sequence,
)
from src.utils.logger import get_logger

logger = get_logger()

MOCK_PAYLOAD = b"\x00\x00\x00\x18ftypmp42mock-video"


class RecordingEncoder(Encoder):
    """
    Lightweight encoder used for tests and dry runs.

    Checks the frame order the same way the real encoder does, remembers what
    it was handed and writes a tiny placeholder file instead of real media.
    Set ``fail_with_code`` to simulate ffmpeg exiting nonzero.
    """

    def __init__(self, fail_with_code: Optional[int] = None, stderr: str = "simulated encoder failure"):
        self.fail_with_code = fail_with_code
        self.stderr = stderr
        self.frame_files: List[str] = []
        self.audio_track: Optional[AudioTrack] = None
        self.options: Optional[EncodeOptions] = None
        self.calls = 0

    def encode(
        self,
        frame_files: Sequence[str],
        audio_track: AudioTrack,
        output_path: str,
        options: EncodeOptions,
        progress: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        self.calls += 1
        validate_frame_sequence(frame_files)
        self.frame_files = [str(f) for f in frame_files]
        self.audio_track = audio_track
        self.options = options

        total = len(self.frame_files)
        for i, frame in enumerate(self.frame_files):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("encoding")
            if not Path(frame).exists():
                raise EncodingError(f"Frame file missing: {frame}", returncode=1)
            notify(progress, i / total, logger)

        if self.fail_with_code is not None:
            raise EncodingError(
                f"ffmpeg exited with code {self.fail_with_code}",
                stderr=self.stderr,
                returncode=self.fail_with_code,
            )

        with open(output_path, "wb") as f:
            f.write(MOCK_PAYLOAD)

        notify(progress, 1.0, logger)
        logger.info(f"✅ Mock encoding completed: {output_path} ({total} frames)")
        return output_path
