import asyncio
import math
import wave
from numbers import Real

import numpy as np

from src.core.errors import StorageError, SynthesisError
from src.core.models import AudioTrack, NarrationScript
from src.utils.logger import get_logger

logger = get_logger()


class AudioTrackSynthesizer:
    """
    Abstract interface for narration backends.

    Callers only ever ask for a script at a target duration, so a real
    text-to-speech engine can replace the placeholder without touching them.
    """

    sample_rate: int = 44100
    channels: int = 2

    def synthesize(self, script: NarrationScript, target_duration: float, output_path: str) -> AudioTrack:
        """
        Produces an audio file lasting at least ``target_duration`` seconds.

        Raises:
            SynthesisError: when the duration is not a positive number.
        """
        raise NotImplementedError("Subclasses must implement synthesize()")

    async def synthesize_async(
        self, script: NarrationScript, target_duration: float, output_path: str
    ) -> AudioTrack:
        return await asyncio.to_thread(self.synthesize, script, target_duration, output_path)

    @staticmethod
    def check_duration(target_duration) -> float:
        if isinstance(target_duration, bool) or not isinstance(target_duration, Real):
            raise SynthesisError(f"Target duration must be a number, got {target_duration!r}")
        if not math.isfinite(target_duration) or target_duration <= 0:
            raise SynthesisError(f"Target duration must be positive, got {target_duration}")
        return float(target_duration)


class SilentAudioSynthesizer(AudioTrackSynthesizer):
    """Placeholder narration: 16-bit PCM silence written as WAV."""

    CHUNK_SECONDS = 5

    def __init__(self, sample_rate: int = 44100, channels: int = 2):
        self.sample_rate = sample_rate
        self.channels = channels

    def synthesize(self, script: NarrationScript, target_duration: float, output_path: str) -> AudioTrack:
        duration = self.check_duration(target_duration)
        total_samples = math.ceil(duration * self.sample_rate)

        logger.info(f"🔈 Synthesizing {duration:.2f}s of placeholder narration -> {output_path}")

        chunk = np.zeros(self.CHUNK_SECONDS * self.sample_rate * self.channels, dtype="<i2").tobytes()
        frame_bytes = 2 * self.channels
        try:
            with wave.open(output_path, "wb") as wav:
                wav.setnchannels(self.channels)
                wav.setsampwidth(2)
                wav.setframerate(self.sample_rate)
                remaining = total_samples
                while remaining > 0:
                    n = min(remaining, self.CHUNK_SECONDS * self.sample_rate)
                    wav.writeframes(chunk[: n * frame_bytes])
                    remaining -= n
        except OSError as e:
            raise StorageError(f"Cannot write audio track {output_path}: {e}") from e

        return AudioTrack(
            path=output_path,
            duration=total_samples / self.sample_rate,
            sample_rate=self.sample_rate,
            channels=self.channels,
            script=script,
        )
