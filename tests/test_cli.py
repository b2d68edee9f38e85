import json
from unittest.mock import patch

import main
from src.core.errors import EncodingError
from src.core.models import VideoArtifact, VideoStatus


def artifact(status):
    return VideoArtifact(
        id="v1", product_id="cli_product", file_path="v1.mp4", thumbnail_path="v1_thumbnail.jpg",
        duration=12.0, resolution="1080x1920", status=status,
    )


def test_generate_prints_artifact(capsys):
    with patch("main.VideoGenerationOrchestrator") as engine_cls:
        engine_cls.return_value.generate.return_value = artifact(VideoStatus.READY)
        code = main.main(["generate", "--title", "Curso", "--price", "97", "--duration", "12"])

    assert code == 0
    product, options = engine_cls.return_value.generate.call_args.args
    assert product["title"] == "Curso"
    assert product["price"] == 97.0
    assert options == {"duration": 12.0}
    assert json.loads(capsys.readouterr().out)["status"] == "ready"


def test_generate_failure_exit_code(capsys):
    err = EncodingError("ffmpeg exited with code 1", returncode=1, artifact=artifact(VideoStatus.FAILED))
    with patch("main.VideoGenerationOrchestrator") as engine_cls:
        engine_cls.return_value.generate.side_effect = err
        code = main.main(["generate", "--title", "Curso", "--price", "97"])

    assert code == 1
    assert json.loads(capsys.readouterr().out)["status"] == "failed"


def test_list_command(tmp_path, capsys):
    (tmp_path / "a.mp4").write_bytes(b"x")
    with patch.object(main.settings, "output_root", str(tmp_path)):
        assert main.main(["list"]) == 0

    listed = json.loads(capsys.readouterr().out)
    assert [v["id"] for v in listed] == ["a"]
