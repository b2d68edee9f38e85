from src.config.settings import Settings


def test_defaults():
    s = Settings()
    assert s.framerate == 30
    assert s.resolution == "1080x1920"
    assert s.audio_channels == 2
    assert (s.duration_min, s.duration_max) == (15.0, 30.0)
    assert s.video_codec == "libx264"
    assert s.pixel_format == "yuv420p"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PROMO_FRAMERATE", "24")
    monkeypatch.setenv("PROMO_OUTPUT_ROOT", "/srv/videos")
    monkeypatch.setenv("PROMO_ENCODER_TIMEOUT", "120.5")

    s = Settings.load()

    assert s.framerate == 24
    assert s.output_root == "/srv/videos"
    assert s.encoder_timeout == 120.5


def test_unparseable_values_keep_default(monkeypatch):
    monkeypatch.setenv("PROMO_FRAMERATE", "thirty")
    monkeypatch.setenv("PROMO_CRF", "")

    s = Settings.load()

    assert s.framerate == 30
    assert s.crf == 23


def test_every_encoding_and_audio_field_is_overridable(monkeypatch):
    monkeypatch.setenv("PROMO_ASPECT_RATIO", "4:5")
    monkeypatch.setenv("PROMO_PIXEL_FORMAT", "yuv444p")
    monkeypatch.setenv("PROMO_AUDIO_CHANNELS", "1")

    s = Settings.load()

    assert s.aspect_ratio == "4:5"
    assert s.pixel_format == "yuv444p"
    assert s.audio_channels == 1
