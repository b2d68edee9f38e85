import subprocess
import threading
import time
from pathlib import Path
from typing import IO, List, Optional, Sequence

from src.core.errors import EncodingError, GenerationCancelled
from src.core.models import AudioTrack, EncodeOptions
from src.encoding.base import (
    CancellationToken,
    Encoder,
    ProgressObserver,
    notify,
    validate_frame_sequence,
)
from src.utils.files import replace_atomically
from src.utils.logger import get_logger

logger = get_logger()

PART_SUFFIX = ".part"


class FFmpegEncoder(Encoder):
    """
    Muxes a PNG sequence and an audio track into an H.264/AAC MP4 by driving
    the ffmpeg CLI.

    ffmpeg writes to ``<output>.part``; the file is renamed into place only
    after a zero exit, and removed on any failure.
    """

    def __init__(
        self,
        binary: str = "ffmpeg",
        poll_interval: float = 0.2,
        terminate_grace: float = 5.0,
    ):
        self.binary = binary
        self.poll_interval = poll_interval
        self.terminate_grace = terminate_grace

    def build_command(
        self,
        frame_pattern: str,
        audio_path: str,
        output_path: str,
        options: EncodeOptions,
    ) -> List[str]:
        cmd = [
            self.binary,
            "-y",
            "-hide_banner",
            "-nostats",
            "-loglevel", "error",
            "-progress", "pipe:1",
            "-framerate", str(options.framerate),
            "-start_number", "0",
            "-i", frame_pattern,
            "-i", audio_path,
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-c:v", options.video_codec,
            "-preset", options.preset,
            "-crf", str(options.crf),
            "-pix_fmt", options.pixel_format,
            "-s", options.resolution,
            "-aspect", options.aspect_ratio,
            "-r", str(options.framerate),
            "-c:a", options.audio_codec,
            "-b:a", options.audio_bitrate,
            "-shortest",
        ]
        if options.faststart:
            cmd += ["-movflags", "+faststart"]
        cmd += ["-f", "mp4", output_path]
        return cmd

    def encode(
        self,
        frame_files: Sequence[str],
        audio_track: AudioTrack,
        output_path: str,
        options: EncodeOptions,
        progress: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> str:
        pattern = validate_frame_sequence(frame_files)
        total_seconds = len(frame_files) / options.framerate
        part_path = output_path + PART_SUFFIX
        cmd = self.build_command(pattern, audio_track.path, part_path, options)

        logger.info(
            f"🎬 Encoding {len(frame_files)} frames @ {options.framerate}fps -> {output_path}"
        )

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as exc:
            raise EncodingError(
                f"ffmpeg is required to encode videos ('{self.binary}' not found)"
            ) from exc

        stderr_chunks: List[str] = []
        drain = threading.Thread(
            target=self._drain, args=(process.stderr, stderr_chunks), daemon=True
        )
        reader = threading.Thread(
            target=self._read_progress,
            args=(process.stdout, total_seconds, progress),
            daemon=True,
        )
        drain.start()
        reader.start()

        try:
            returncode = self._wait(process, cancel_token, options.timeout)
        except (EncodingError, GenerationCancelled):
            Path(part_path).unlink(missing_ok=True)
            raise
        finally:
            reader.join(timeout=self.terminate_grace)
            drain.join(timeout=self.terminate_grace)

        if returncode != 0:
            Path(part_path).unlink(missing_ok=True)
            stderr = "".join(stderr_chunks)
            logger.error(f"❌ ffmpeg exited with code {returncode}")
            raise EncodingError(
                f"ffmpeg exited with code {returncode}", stderr=stderr, returncode=returncode
            )

        replace_atomically(part_path, output_path)
        notify(progress, 1.0, logger)
        logger.info(f"✅ Video encoding completed: {output_path}")
        return output_path

    def _wait(
        self,
        process: subprocess.Popen,
        cancel_token: Optional[CancellationToken],
        timeout: Optional[float],
    ) -> int:
        deadline = time.monotonic() + timeout if timeout else None
        while True:
            try:
                return process.wait(timeout=self.poll_interval)
            except subprocess.TimeoutExpired:
                pass

            if cancel_token is not None and cancel_token.cancelled:
                logger.warning("🛑 Encoding cancelled, terminating ffmpeg")
                self._terminate(process)
                raise GenerationCancelled("Cancelled during encoding")

            if deadline is not None and time.monotonic() > deadline:
                logger.error(f"⏱️ ffmpeg exceeded {timeout}s, terminating")
                self._terminate(process)
                raise EncodingError(f"ffmpeg timed out after {timeout}s")

    def _terminate(self, process: subprocess.Popen) -> None:
        process.terminate()
        try:
            process.wait(timeout=self.terminate_grace)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    @staticmethod
    def _drain(stream: IO[str], sink: List[str]) -> None:
        for chunk in stream:
            sink.append(chunk)

    @staticmethod
    def _read_progress(
        stream: IO[str], total_seconds: float, progress: Optional[ProgressObserver]
    ) -> None:
        """Turns ffmpeg's ``-progress`` key=value stream into fractions."""
        last = 0.0
        logged_decile = 0
        for line in stream:
            key, _, value = line.strip().partition("=")
            # out_time_ms is reported in microseconds as well
            if key not in ("out_time_us", "out_time_ms"):
                continue
            try:
                seconds = int(value) / 1_000_000
            except ValueError:
                continue  # "N/A" before the first packet
            fraction = min(1.0, max(0.0, seconds / total_seconds))
            if fraction <= last:
                continue
            last = fraction
            notify(progress, fraction, logger)
            decile = int(fraction * 10)
            if decile > logged_decile:
                logged_decile = decile
                logger.info(f"📈 Video encoding progress: {round(fraction * 100)}%")
