import os
from typing import Optional
from pydantic import BaseModel, Field


class Settings(BaseModel):
    # Paths
    output_root: str = Field(default="output/videos", description="Finished videos and thumbnails")
    temp_root: str = Field(default="temp", description="Scratch root for per-run frames and audio")

    # Timing
    framerate: int = Field(default=30, description="Default frames per second")
    duration_min: float = Field(default=15.0, description="Lower bound for a computed duration (s)")
    duration_max: float = Field(default=30.0, description="Upper bound for a computed duration (s)")

    # Encoding
    resolution: str = Field(default="1080x1920", description="Output frame size WxH")
    aspect_ratio: str = Field(default="9:16", description="Display aspect ratio")
    video_codec: str = Field(default="libx264", description="Video codec passed to ffmpeg")
    audio_codec: str = Field(default="aac", description="Audio codec passed to ffmpeg")
    audio_bitrate: str = Field(default="128k", description="Audio bitrate")
    pixel_format: str = Field(default="yuv420p", description="8-bit 4:2:0 pixel format")
    preset: str = Field(default="fast", description="x264 speed/quality preset")
    crf: int = Field(default=23, description="Constant rate factor")
    encoder_timeout: float = Field(default=600.0, description="Seconds before ffmpeg is killed")
    ffmpeg_binary: str = Field(default="ffmpeg", description="ffmpeg executable")

    # Audio
    audio_sample_rate: int = Field(default=44100, description="Narration sample rate (Hz)")
    audio_channels: int = Field(default=2, description="Narration channel count")

    # Rendering
    render_workers: int = Field(default=4, description="Concurrent frame renders per run")
    thumbnail_quality: int = Field(default=90, description="JPEG quality for thumbnails")
    font_path: Optional[str] = Field(default=None, description="TrueType font used for all text")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @staticmethod
    def load() -> "Settings":
        """
        Load settings from environment variables or defaults.
        Values that fail to parse keep their default.
        """
        overrides = {}

        env_map = {
            "PROMO_OUTPUT_ROOT": ("output_root", str),
            "PROMO_TEMP_ROOT": ("temp_root", str),
            "PROMO_FRAMERATE": ("framerate", int),
            "PROMO_DURATION_MIN": ("duration_min", float),
            "PROMO_DURATION_MAX": ("duration_max", float),
            "PROMO_RESOLUTION": ("resolution", str),
            "PROMO_ASPECT_RATIO": ("aspect_ratio", str),
            "PROMO_VIDEO_CODEC": ("video_codec", str),
            "PROMO_AUDIO_CODEC": ("audio_codec", str),
            "PROMO_AUDIO_BITRATE": ("audio_bitrate", str),
            "PROMO_PIXEL_FORMAT": ("pixel_format", str),
            "PROMO_PRESET": ("preset", str),
            "PROMO_CRF": ("crf", int),
            "PROMO_ENCODER_TIMEOUT": ("encoder_timeout", float),
            "PROMO_FFMPEG_BINARY": ("ffmpeg_binary", str),
            "PROMO_AUDIO_SAMPLE_RATE": ("audio_sample_rate", int),
            "PROMO_AUDIO_CHANNELS": ("audio_channels", int),
            "PROMO_RENDER_WORKERS": ("render_workers", int),
            "PROMO_THUMBNAIL_QUALITY": ("thumbnail_quality", int),
            "PROMO_FONT_PATH": ("font_path", str),
            "PROMO_LOG_LEVEL": ("log_level", str),
        }

        for env_var, (field, type_) in env_map.items():
            val = os.getenv(env_var)
            if val is not None:
                try:
                    overrides[field] = type_(val)
                except ValueError:
                    pass  # Keep default if parse fails

        return Settings(**overrides)


# Global settings instance
settings = Settings.load()
