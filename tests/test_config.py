from pathlib import Path

import pytest

from mediabatch import config as config_module
from mediabatch.config import Config, load_config, validate_config

ENV_VARS = (
    "MEDIABATCH_FFMPEG", "MEDIABATCH_FFPROBE", "DEFAULT_ENCODER_ARGS", "SEGMENT_ENCODER_ARGS",
    "AUDIO_CODEC", "AUDIO_BITRATE", "OUTPUT_TO_OK_DIR", "TEMP_DIR", "POLL_INTERVAL_MS",
    "LOG_LEVEL", "LOG_FILE", "WEBHOOK_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config()
    assert config.ffmpeg_path == "ffmpeg"
    assert config.audio_codec == "aac"
    assert config.output_to_ok_dir is False
    assert config.poll_interval == pytest.approx(0.1)
    assert config.webhook_url is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MEDIABATCH_FFMPEG", "/opt/ffmpeg/bin/ffmpeg")
    monkeypatch.setenv("OUTPUT_TO_OK_DIR", "yes")
    monkeypatch.setenv("TEMP_DIR", str(tmp_path / "scratch"))
    monkeypatch.setenv("POLL_INTERVAL_MS", "250")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config()

    assert config.ffmpeg_path == "/opt/ffmpeg/bin/ffmpeg"
    assert config.output_to_ok_dir is True
    assert config.temp_dir == tmp_path / "scratch"
    assert config.poll_interval == pytest.approx(0.25)
    assert config.log_level == "DEBUG"


def test_validate_accepts_installed_tools(monkeypatch, tmp_path):
    monkeypatch.setattr(config_module.shutil, "which", lambda tool: f"/usr/bin/{tool}")
    config = Config(temp_dir=tmp_path / "tmp")

    assert validate_config(config)
    assert (tmp_path / "tmp").is_dir()


def test_validate_reports_every_problem(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(config_module.shutil, "which", lambda tool: None)
    blocker = tmp_path / "file"
    blocker.write_bytes(b"")
    config = Config(temp_dir=Path(blocker / "tmp"), poll_interval_ms=0)

    assert not validate_config(config)

    err = capsys.readouterr().err
    assert "MEDIABATCH_FFMPEG" in err
    assert "MEDIABATCH_FFPROBE" in err
    assert "POLL_INTERVAL_MS" in err
    assert "TEMP_DIR" in err
