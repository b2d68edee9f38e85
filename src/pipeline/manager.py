import asyncio
import random
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from src.audio.narration import NarrationScriptGenerator
from src.audio.synthesizer import AudioTrackSynthesizer, SilentAudioSynthesizer
from src.config.settings import Settings, settings as default_settings
from src.core.errors import (
    PromoEngineError,
    RenderError,
    StorageError,
    SynthesisError,
    ValidationError,
)
from src.core.library import VideoLibrary
from src.core.models import (
    AudioTrack,
    EncodeOptions,
    GenerationOptions,
    PipelineState,
    Product,
    VideoArtifact,
    VideoStatus,
)
from src.encoding.base import CancellationToken, Encoder, ProgressObserver, frame_file_name
from src.encoding.ffmpeg import PART_SUFFIX, FFmpegEncoder
from src.pipeline.janitor import ResourceJanitor
from src.render.composer import FrameComposer
from src.render.thumbnail import ThumbnailRenderer
from src.utils.files import ensure_dir
from src.utils.logger import get_logger
from src.vision.probe import probe_video

logger = get_logger()

StateListener = Callable[[str, PipelineState], None]


@dataclass
class _Run:
    """Per-invocation bookkeeping; nothing here is shared between runs."""

    video_id: str
    video_path: str
    thumbnail_path: str
    frame_paths: List[str] = field(default_factory=list)
    audio_path: Optional[str] = None
    state: PipelineState = PipelineState.INITIALIZING
    started: float = field(default_factory=time.perf_counter)


class VideoGenerationOrchestrator:
    """
    Turns one product into a finished vertical video plus thumbnail.

    initializing -> rendering_frames -> synthesizing_audio -> encoding -> ready,
    with any failure going straight to failed. Temporary frames and audio are
    removed on every exit path; there is no retry.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        composer: Optional[FrameComposer] = None,
        narrator: Optional[NarrationScriptGenerator] = None,
        synthesizer: Optional[AudioTrackSynthesizer] = None,
        encoder: Optional[Encoder] = None,
        thumbnailer: Optional[ThumbnailRenderer] = None,
        janitor: Optional[ResourceJanitor] = None,
        rng: Optional[random.Random] = None,
        state_listener: Optional[StateListener] = None,
    ):
        self.settings = settings or default_settings
        self.rng = rng or random.Random()

        self.composer = composer or FrameComposer(font_path=self.settings.font_path)
        self.narrator = narrator or NarrationScriptGenerator(rng=self.rng)
        self.synthesizer = synthesizer or SilentAudioSynthesizer(
            sample_rate=self.settings.audio_sample_rate,
            channels=self.settings.audio_channels,
        )
        self.encoder = encoder or FFmpegEncoder(binary=self.settings.ffmpeg_binary)
        self.thumbnailer = thumbnailer or ThumbnailRenderer(
            composer=self.composer, quality=self.settings.thumbnail_quality
        )
        self.janitor = janitor or ResourceJanitor()
        self.state_listener = state_listener

    def generate(
        self,
        product: Union[Product, Mapping[str, Any]],
        options: Optional[Mapping[str, Any]] = None,
        progress: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> VideoArtifact:
        """
        Synchronous entry point for the pipeline.
        """
        return asyncio.run(self.generate_async(product, options, progress, cancel_token))

    async def generate_async(
        self,
        product: Union[Product, Mapping[str, Any]],
        options: Optional[Mapping[str, Any]] = None,
        progress: Optional[ProgressObserver] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> VideoArtifact:
        # Reject bad input before anything touches the filesystem
        product = self._coerce_product(product)
        opts = GenerationOptions.from_mapping(options)

        framerate = opts.framerate or self.settings.framerate
        duration = opts.duration if opts.duration is not None else self._pick_duration()
        total_frames = int(round(duration * framerate)) if duration > 0 else 0

        output_root = Path(self.settings.output_root)
        video_id = str(uuid.uuid4())
        run = _Run(
            video_id=video_id,
            video_path=str(output_root / f"{video_id}.mp4"),
            thumbnail_path=str(output_root / f"{video_id}_thumbnail.jpg"),
        )
        artifact = VideoArtifact(
            id=video_id,
            product_id=product.id,
            file_path=run.video_path,
            thumbnail_path=None,
            duration=duration,
            resolution=self.settings.resolution,
            metadata={
                "product": product.title,
                "platform": product.platform,
                "price": float(product.price),
            },
        )

        logger.info(f"🚀 Starting video generation for product: {product.title} [{video_id}]")
        self._transition(run, PipelineState.INITIALIZING)
        # Fires when the caller's token does or when this task is cancelled
        run_token = CancellationToken(parent=cancel_token)

        try:
            temp_root = Path(self.settings.temp_root)
            frames_dir = ensure_dir(temp_root / "frames")
            audio_dir = ensure_dir(temp_root / "audio")
            ensure_dir(output_root)

            run.frame_paths = [str(frames_dir / frame_file_name(video_id, i)) for i in range(total_frames)]
            run.audio_path = str(audio_dir / f"{video_id}_narration.wav")
            self._check_cancelled(run_token, "initialization")

            self._transition(run, PipelineState.RENDERING_FRAMES)
            script = self.narrator.generate(product)
            audio_task = asyncio.create_task(
                self._run_to_completion(
                    self.synthesizer.synthesize_async(script, duration, run.audio_path), run_token
                )
            )
            try:
                await self._render_frames(product, run.frame_paths, run_token)
            except BaseException:
                # Let the audio thread finish before cleanup runs
                await asyncio.gather(audio_task, return_exceptions=True)
                raise

            self._transition(run, PipelineState.SYNTHESIZING_AUDIO)
            audio = await audio_task
            self._check_in_sync(run.frame_paths, audio, framerate)
            self._check_cancelled(run_token, "audio synthesis")

            self._transition(run, PipelineState.ENCODING)
            await self._run_to_completion(
                self.encoder.encode_async(
                    run.frame_paths,
                    audio,
                    run.video_path,
                    EncodeOptions.from_settings(self.settings, framerate=framerate),
                    progress=progress,
                    cancel_token=run_token,
                ),
                run_token,
            )

            artifact.thumbnail_path = await self._run_to_completion(
                asyncio.to_thread(self.thumbnailer.render_thumbnail, product, run.thumbnail_path),
                run_token,
            )

            probe = await self._run_to_completion(
                asyncio.to_thread(probe_video, run.video_path), run_token
            )
            if probe is not None:
                artifact.duration = round(probe.duration, 3)

            artifact.status = VideoStatus.READY
            self._transition(run, PipelineState.READY)
            logger.info(
                f"🏁 Video generation completed: {run.video_path} "
                f"({time.perf_counter() - run.started:.1f}s)"
            )
            return artifact

        except asyncio.CancelledError:
            run_token.cancel()
            self._fail(run, artifact)
            logger.warning(f"🛑 Video generation cancelled for product {product.title}")
            raise

        except Exception as e:
            self._fail(run, artifact)
            logger.error(f"❌ Error generating video for product {product.title}: {e}")

            if isinstance(e, PromoEngineError):
                e.artifact = artifact
                raise
            if isinstance(e, OSError):
                raise StorageError(str(e), artifact=artifact) from e
            raise

        finally:
            self.janitor.cleanup(run.frame_paths, run.audio_path)

    def list_videos(self) -> List[Dict[str, Any]]:
        return VideoLibrary(self.settings.output_root).list_videos()

    def _fail(self, run: _Run, artifact: VideoArtifact) -> None:
        artifact.status = VideoStatus.FAILED
        self._transition(run, PipelineState.FAILED)
        self.janitor.remove_outputs(
            run.video_path, run.video_path + PART_SUFFIX, run.thumbnail_path
        )

    @staticmethod
    async def _run_to_completion(work: Awaitable, token: CancellationToken):
        """
        Awaits work that runs in a worker thread.

        Cancelling the caller does not stop a thread, so on cancellation the
        token is fired and the thread is waited for before the cancellation
        propagates. Nothing the thread writes can outlive cleanup.
        """
        task = asyncio.ensure_future(work)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            token.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise

    async def _render_frames(
        self,
        product: Product,
        frame_paths: List[str],
        cancel_token: CancellationToken,
    ) -> None:
        """
        Renders every frame to its planned path, up to ``render_workers`` at a
        time. Frame i always lands at frame_paths[i], so completion order does
        not matter to the encoder.
        """
        total = len(frame_paths)
        logger.info(f"🎞️ Generating {total} frames")

        semaphore = asyncio.Semaphore(max(1, self.settings.render_workers))
        failed = asyncio.Event()
        done = 0

        async def render_one(index: int, path: str):
            nonlocal done
            async with semaphore:
                if failed.is_set():
                    return
                try:
                    self._check_cancelled(cancel_token, "frame rendering")
                    await self._run_to_completion(
                        asyncio.to_thread(self.composer.render_to_file, product, index, total, path),
                        cancel_token,
                    )
                except Exception:
                    failed.set()
                    raise
                done += 1
                if done % 30 == 0:
                    logger.info(f"Generated {done}/{total} frames")

        results = await asyncio.gather(
            *(render_one(i, p) for i, p in enumerate(frame_paths)),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            raise errors[0]

        logger.info(f"✅ Frame generation completed ({total} frames)")

    def _check_in_sync(self, frame_paths: List[str], audio: Optional[AudioTrack], framerate: int) -> None:
        if not frame_paths:
            raise RenderError("No frames were rendered")
        if audio is None:
            raise SynthesisError("No audio track was produced")

        video_seconds = len(frame_paths) / framerate
        if abs(video_seconds - audio.duration) > 1.0 / framerate:
            raise SynthesisError(
                f"Audio ({audio.duration:.3f}s) and frames ({video_seconds:.3f}s) "
                f"differ by more than one frame period"
            )

    def _pick_duration(self) -> float:
        return self.rng.uniform(self.settings.duration_min, self.settings.duration_max)

    def _transition(self, run: _Run, state: PipelineState) -> None:
        run.state = state
        logger.debug(f"[{run.video_id}] state -> {state.value}")
        if self.state_listener is None:
            return
        try:
            self.state_listener(run.video_id, state)
        except Exception as e:
            logger.warning(f"⚠️ State listener raised: {e}")

    @staticmethod
    def _check_cancelled(cancel_token: Optional[CancellationToken], stage: str) -> None:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(stage)

    @staticmethod
    def _coerce_product(product: Union[Product, Mapping[str, Any]]) -> Product:
        if isinstance(product, Mapping):
            product = Product.from_dict(product)
        elif not isinstance(product, Product):
            raise ValidationError(f"Unsupported product record: {type(product).__name__}")
        return product.validate()
