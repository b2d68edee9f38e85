import io
import shutil
import subprocess
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from src.audio.synthesizer import SilentAudioSynthesizer
from src.core.errors import EncodingError, GenerationCancelled
from src.core.models import AudioTrack, EncodeOptions, NarrationScript
from src.encoding.base import CancellationToken, frame_file_name, validate_frame_sequence
from src.encoding.ffmpeg import PART_SUFFIX, FFmpegEncoder
from src.encoding.mock import RecordingEncoder
from src.render.composer import FrameComposer
from src.vision.probe import probe_video


def frames(directory, count, video_id="vid"):
    return [str(Path(directory) / frame_file_name(video_id, i)) for i in range(count)]


class FakePopen:
    """Stands in for an ffmpeg process; writes the .part file like ffmpeg would."""

    def __init__(self, cmd, stdout_text="", stderr_text="", returncode=0, hang=False):
        self.cmd = cmd
        self.stdout = io.StringIO(stdout_text)
        self.stderr = io.StringIO(stderr_text)
        self.returncode = returncode
        self.hang = hang
        self.terminated = False
        Path(cmd[-1]).write_bytes(b"partial")

    def wait(self, timeout=None):
        if self.hang and not self.terminated:
            time.sleep(min(timeout or 0.01, 0.01))
            raise subprocess.TimeoutExpired(self.cmd, timeout)
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.terminated = True
        self.returncode = -9


def launch(**behaviour):
    started = []

    def factory(cmd, **kwargs):
        proc = FakePopen(cmd, **behaviour)
        started.append(proc)
        return proc

    return factory, started


@pytest.fixture
def audio(tmp_path):
    return AudioTrack(path=str(tmp_path / "narration.wav"), duration=2.0)


# --- frame sequence ---------------------------------------------------------

def test_valid_sequence_yields_ffmpeg_pattern(tmp_path):
    pattern = validate_frame_sequence(frames(tmp_path, 3))
    assert pattern == str(tmp_path / "vid_frame_%05d.png")


def test_empty_sequence_rejected():
    with pytest.raises(EncodingError):
        validate_frame_sequence([])


def test_gap_in_sequence_rejected(tmp_path):
    files = frames(tmp_path, 5)
    del files[2]
    with pytest.raises(EncodingError, match="position 2"):
        validate_frame_sequence(files)


def test_reordered_sequence_rejected(tmp_path):
    files = frames(tmp_path, 4)
    files[1], files[2] = files[2], files[1]
    with pytest.raises(EncodingError):
        validate_frame_sequence(files)


def test_sequence_not_starting_at_zero_rejected(tmp_path):
    with pytest.raises(EncodingError):
        validate_frame_sequence(frames(tmp_path, 4)[1:])


def test_mixed_runs_rejected(tmp_path):
    files = frames(tmp_path, 2, "a") + [str(tmp_path / frame_file_name("b", 2))]
    with pytest.raises(EncodingError):
        validate_frame_sequence(files)

    files = frames(tmp_path, 2) + [str(tmp_path / "other" / frame_file_name("vid", 2))]
    with pytest.raises(EncodingError):
        validate_frame_sequence(files)


def test_cancellation_token():
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel()
    assert token.cancelled
    with pytest.raises(GenerationCancelled, match="encoding"):
        token.raise_if_cancelled("encoding")


def test_child_token_follows_parent_but_not_the_reverse():
    parent = CancellationToken()
    child = CancellationToken(parent=parent)

    child.cancel()
    assert child.cancelled
    assert not parent.cancelled

    sibling = CancellationToken(parent=parent)
    parent.cancel()
    assert sibling.cancelled
    with pytest.raises(GenerationCancelled):
        sibling.raise_if_cancelled("frame rendering")


# --- ffmpeg command ---------------------------------------------------------

def test_command_carries_platform_encoding_parameters():
    cmd = FFmpegEncoder().build_command("f_%05d.png", "a.wav", "out.mp4.part", EncodeOptions(framerate=30))
    joined = " ".join(cmd)

    assert cmd[0] == "ffmpeg"
    assert "-c:v libx264" in joined
    assert "-pix_fmt yuv420p" in joined
    assert "-s 1080x1920" in joined
    assert "-aspect 9:16" in joined
    assert "-c:a aac" in joined
    assert "-b:a 128k" in joined
    assert "-movflags +faststart" in joined
    assert "-framerate 30" in joined
    assert "-progress pipe:1" in joined
    assert cmd[-3:] == ["-f", "mp4", "out.mp4.part"]


# --- ffmpeg process handling ------------------------------------------------

def test_successful_encode_moves_part_into_place(tmp_path, audio):
    factory, started = launch()
    output = tmp_path / "out.mp4"

    with patch("src.encoding.ffmpeg.subprocess.Popen", side_effect=factory):
        result = FFmpegEncoder().encode(frames(tmp_path, 60), audio, str(output), EncodeOptions())

    assert result == str(output)
    assert output.read_bytes() == b"partial"
    assert not Path(str(output) + PART_SUFFIX).exists()
    assert started[0].cmd[started[0].cmd.index("-i") + 1] == str(tmp_path / "vid_frame_%05d.png")


def test_progress_is_reported_as_fractions(tmp_path, audio):
    stdout = "\n".join(
        [
            "out_time_us=N/A",
            "out_time_us=500000",
            "out_time_ms=500000",
            "out_time_us=1000000",
            "progress=end",
        ]
    )
    factory, _ = launch(stdout_text=stdout)
    seen = []

    with patch("src.encoding.ffmpeg.subprocess.Popen", side_effect=factory):
        FFmpegEncoder().encode(
            frames(tmp_path, 60), audio, str(tmp_path / "out.mp4"), EncodeOptions(framerate=30),
            progress=seen.append,
        )

    assert seen == [0.25, 0.5, 1.0]


def test_nonzero_exit_raises_with_stderr(tmp_path, audio):
    factory, _ = launch(returncode=1, stderr_text="vid_frame_%05d.png: No such file or directory\n")
    output = tmp_path / "out.mp4"

    with patch("src.encoding.ffmpeg.subprocess.Popen", side_effect=factory):
        with pytest.raises(EncodingError) as exc_info:
            FFmpegEncoder().encode(frames(tmp_path, 10), audio, str(output), EncodeOptions())

    err = exc_info.value
    assert err.returncode == 1
    assert "No such file" in err.stderr
    assert "No such file" in str(err)
    assert not output.exists()
    assert not Path(str(output) + PART_SUFFIX).exists()


def test_cancel_terminates_ffmpeg(tmp_path, audio):
    factory, started = launch(hang=True)
    token = CancellationToken()
    token.cancel()
    output = tmp_path / "out.mp4"

    with patch("src.encoding.ffmpeg.subprocess.Popen", side_effect=factory):
        with pytest.raises(GenerationCancelled):
            FFmpegEncoder(poll_interval=0.01).encode(
                frames(tmp_path, 10), audio, str(output), EncodeOptions(), cancel_token=token
            )

    assert started[0].terminated
    assert not output.exists()
    assert not Path(str(output) + PART_SUFFIX).exists()


def test_timeout_terminates_ffmpeg(tmp_path, audio):
    factory, started = launch(hang=True)

    with patch("src.encoding.ffmpeg.subprocess.Popen", side_effect=factory):
        with pytest.raises(EncodingError, match="timed out"):
            FFmpegEncoder(poll_interval=0.01).encode(
                frames(tmp_path, 10), audio, str(tmp_path / "out.mp4"), EncodeOptions(timeout=0.05)
            )

    assert started[0].terminated


def test_missing_binary_is_encoding_error(tmp_path, audio):
    with patch("src.encoding.ffmpeg.subprocess.Popen", side_effect=FileNotFoundError("ffmpeg")):
        with pytest.raises(EncodingError, match="not found"):
            FFmpegEncoder().encode(frames(tmp_path, 3), audio, str(tmp_path / "out.mp4"), EncodeOptions())


def test_broken_sequence_never_starts_ffmpeg(tmp_path, audio):
    files = frames(tmp_path, 3)
    files.reverse()
    with patch("src.encoding.ffmpeg.subprocess.Popen") as popen:
        with pytest.raises(EncodingError):
            FFmpegEncoder().encode(files, audio, str(tmp_path / "out.mp4"), EncodeOptions())
    popen.assert_not_called()


# --- recording encoder ------------------------------------------------------

def test_recording_encoder_requires_frames_on_disk(tmp_path, audio):
    with pytest.raises(EncodingError, match="missing"):
        RecordingEncoder().encode(frames(tmp_path, 2), audio, str(tmp_path / "out.mp4"), EncodeOptions())


def test_recording_encoder_simulated_failure(tmp_path, audio):
    files = frames(tmp_path, 2)
    for f in files:
        Path(f).write_bytes(b"png")

    encoder = RecordingEncoder(fail_with_code=187, stderr="Conversion failed!")
    with pytest.raises(EncodingError) as exc_info:
        encoder.encode(files, audio, str(tmp_path / "out.mp4"), EncodeOptions())

    assert exc_info.value.returncode == 187
    assert encoder.calls == 1
    assert not (tmp_path / "out.mp4").exists()


# --- real ffmpeg ------------------------------------------------------------

@pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg not installed")
def test_real_ffmpeg_produces_vertical_mp4(tmp_path, product):
    composer = FrameComposer()
    files = frames(tmp_path, 6)
    for i, path in enumerate(files):
        composer.render_to_file(product, i, len(files), path)
    track = SilentAudioSynthesizer().synthesize(NarrationScript("x"), 0.2, str(tmp_path / "n.wav"))

    output = tmp_path / "out.mp4"
    FFmpegEncoder().encode(files, track, str(output), EncodeOptions(framerate=30))

    assert output.exists()
    probe = probe_video(str(output))
    assert probe is not None
    assert probe.resolution == "1080x1920"
