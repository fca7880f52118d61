import pytest

from conftest import FixedProbe, RecordingRunner, touch
from mediabatch import main as main_module
from mediabatch.jobs import JobParameters, OperationMode
from mediabatch.main import (
    EXIT_FILE_FAILURES,
    EXIT_OK,
    EXIT_PRECONDITION,
    MediaBatchApp,
    build_parser,
)


@pytest.fixture
def fake_tools(monkeypatch):
    """Route the app's batch runner to a recorder instead of ffmpeg."""
    runners = []

    def make_runner(channel=None):
        runner = RecordingRunner(fail_when=lambda c: c.argv[2].endswith("bad.mp4"))
        runners.append(runner)
        return runner

    monkeypatch.setattr("mediabatch.batch.ProcessRunner", make_runner)
    monkeypatch.setattr("mediabatch.batch.ProbeService", lambda runner, ffprobe, channel=None: FixedProbe())
    return runners


def test_parser_defaults(tmp_path):
    args = build_parser().parse_args([str(tmp_path)])
    assert args.mode == "compress"
    assert args.encoder_args is None
    assert not args.no_head and not args.no_tail


def test_parser_rejects_unknown_mode(tmp_path):
    with pytest.raises(SystemExit):
        build_parser().parse_args([str(tmp_path), "--mode", "sharpen"])


def test_app_exit_codes(config, media_folder, fake_tools, capsys):
    config.poll_interval_ms = 5
    config.output_to_ok_dir = True
    touch(media_folder, "good.mp4")
    assert MediaBatchApp(config).run(media_folder, OperationMode.COMPRESS, JobParameters()) == EXIT_OK

    touch(media_folder, "bad.mp4")
    code = MediaBatchApp(config).run(media_folder, OperationMode.COMPRESS, JobParameters())
    assert code == EXIT_FILE_FAILURES

    out = capsys.readouterr().out
    assert "Error processing bad.mp4" in out
    assert "Completed 2/2 (1 failed)" in out


def test_app_rejects_empty_folder(config, media_folder, fake_tools, capsys):
    code = MediaBatchApp(config).run(media_folder, OperationMode.COMPRESS, JobParameters())
    assert code == EXIT_PRECONDITION
    assert "empty" in capsys.readouterr().err.lower()
    assert fake_tools[0].commands == []


def test_main_rejects_bad_regions(monkeypatch, tmp_path, capsys):
    monkeypatch.setattr(main_module, "validate_config", lambda config: True)
    monkeypatch.setattr(main_module, "setup_logging", lambda config, console=False: None)

    code = main_module.main([str(tmp_path), "--mode", "remove-subtitle", "--regions", "1,2,3"])

    assert code == EXIT_PRECONDITION
    assert "Error:" in capsys.readouterr().err
