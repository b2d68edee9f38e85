import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from numbers import Real
from typing import Any, Dict, Mapping, Optional

import numpy as np

from src.core.errors import ValidationError


class Platform(Enum):
    HOTMART = "Hotmart"
    EDUZZ = "Eduzz"
    KIWIPAY = "KiwiPay"


class VideoStatus(str, Enum):
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


class PipelineState(str, Enum):
    INITIALIZING = "initializing"
    RENDERING_FRAMES = "rendering_frames"
    SYNTHESIZING_AUDIO = "synthesizing_audio"
    ENCODING = "encoding"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Product:
    """Read-only product record handed over by the catalog collaborator."""

    id: str
    title: str
    price: float
    platform: str
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        missing = [key for key in ("title", "price") if data.get(key) is None]
        if missing:
            raise ValidationError(f"Product is missing required fields: {', '.join(missing)}")
        return cls(
            id=str(data.get("id") or ""),
            title=data["title"],
            price=data["price"],
            platform=str(data.get("platform") or ""),
            description=data.get("description"),
        )

    def validate(self) -> "Product":
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValidationError("Product title must be a non-empty string")
        if isinstance(self.price, bool) or not isinstance(self.price, (Real, Decimal)):
            raise ValidationError(f"Product price must be a number, got {self.price!r}")
        if not math.isfinite(float(self.price)) or self.price <= 0:
            raise ValidationError(f"Product price must be positive, got {self.price}")
        return self


@dataclass
class RenderFrame:
    pixels: np.ndarray
    frame_index: int
    total_frames: int

    @property
    def progress(self) -> float:
        return self.frame_index / self.total_frames

    @property
    def size(self) -> tuple:
        height, width = self.pixels.shape[:2]
        return width, height


@dataclass(frozen=True)
class NarrationScript:
    text: str
    template_index: int = 0


@dataclass(frozen=True)
class AudioTrack:
    path: str
    duration: float
    sample_rate: int = 44100
    channels: int = 2
    script: Optional[NarrationScript] = None


@dataclass
class VideoArtifact:
    id: str
    product_id: str
    file_path: str
    thumbnail_path: Optional[str]
    duration: float
    resolution: str
    status: VideoStatus = VideoStatus.GENERATING
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class EncodeOptions:
    framerate: int = 30
    resolution: str = "1080x1920"
    aspect_ratio: str = "9:16"
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    pixel_format: str = "yuv420p"
    preset: str = "fast"
    crf: int = 23
    faststart: bool = True
    timeout: Optional[float] = 600.0

    @classmethod
    def from_settings(cls, settings, framerate: Optional[int] = None) -> "EncodeOptions":
        return cls(
            framerate=framerate or settings.framerate,
            resolution=settings.resolution,
            aspect_ratio=settings.aspect_ratio,
            video_codec=settings.video_codec,
            audio_codec=settings.audio_codec,
            audio_bitrate=settings.audio_bitrate,
            pixel_format=settings.pixel_format,
            preset=settings.preset,
            crf=settings.crf,
            timeout=settings.encoder_timeout,
        )


@dataclass(frozen=True)
class GenerationOptions:
    """Recognized keys of the caller's options map; anything else is ignored."""

    duration: Optional[float] = None
    framerate: Optional[int] = None

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "GenerationOptions":
        options = options or {}
        duration = options.get("duration")
        framerate = options.get("framerate")

        if duration is not None and (isinstance(duration, bool) or not isinstance(duration, Real)):
            raise ValidationError(f"Option 'duration' must be a number, got {duration!r}")
        if duration is not None and not math.isfinite(duration):
            raise ValidationError(f"Option 'duration' must be finite, got {duration}")

        if framerate is not None:
            if isinstance(framerate, bool) or not isinstance(framerate, Real):
                raise ValidationError(f"Option 'framerate' must be a number, got {framerate!r}")
            if framerate <= 0 or int(framerate) != framerate:
                raise ValidationError(f"Option 'framerate' must be a positive integer, got {framerate}")
            framerate = int(framerate)

        return cls(
            duration=float(duration) if duration is not None else None,
            framerate=framerate,
        )
