from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from manual_test_wizard import main as cli
from manual_test_wizard.main import MISSING_MODE_MESSAGE, app
from manual_test_wizard.models import OptionTag

runner = CliRunner()

pytestmark = pytest.mark.usefixtures("reset_logging")


class RecordingServer:
    instances: list["RecordingServer"] = []

    def __init__(self, settings, session) -> None:
        self.settings = settings
        self.session = session
        self.served = False
        RecordingServer.instances.append(self)

    def bind(self) -> None:
        pass

    def serve_forever(self) -> None:
        self.served = True


@pytest.fixture
def recording_server(monkeypatch: pytest.MonkeyPatch) -> type[RecordingServer]:
    RecordingServer.instances = []
    monkeypatch.setattr(cli, "WizardServer", RecordingServer)
    return RecordingServer


def test_missing_mode_flag_is_fatal(corpus: Path, recording_server: type[RecordingServer]) -> None:
    result = runner.invoke(app, ["--features-dir", str(corpus)])

    assert result.exit_code == 1
    assert MISSING_MODE_MESSAGE in result.output
    assert recording_server.instances == []


def test_mode_flags_are_mutually_exclusive(corpus: Path, recording_server: type[RecordingServer]) -> None:
    result = runner.invoke(app, ["--pv", "--iv", "--features-dir", str(corpus)])

    assert result.exit_code == 2
    assert recording_server.instances == []


def test_corpus_errors_stop_startup(tmp_path: Path, recording_server: type[RecordingServer]) -> None:
    result = runner.invoke(app, ["--pv", "--features-dir", str(tmp_path / "missing")])

    assert result.exit_code == 1
    assert "Error loading scenarios" in result.output
    assert recording_server.instances == []


def test_serves_loaded_scenarios(tmp_path: Path, corpus: Path, recording_server: type[RecordingServer]) -> None:
    result = runner.invoke(
        app,
        [
            "--ppv",
            "--features-dir",
            str(corpus),
            "--environment",
            "validation",
            "--output-dir",
            str(tmp_path / "results"),
            "--port",
            "9090",
            "--log-format",
            "plain",
        ],
    )

    assert result.exit_code == 0, result.output
    (server,) = recording_server.instances
    assert server.served
    assert server.settings.option_tag is OptionTag.PPV
    assert server.settings.environment == "validation"
    assert server.settings.port == 9090
    assert [scenario.name for scenario in server.session.scenarios] == ["Export monthly report"]


def test_environment_label_must_be_filename_safe(corpus: Path, recording_server: type[RecordingServer]) -> None:
    result = runner.invoke(app, ["--pv", "--features-dir", str(corpus), "--environment", "../prod"])

    assert result.exit_code == 2
    assert recording_server.instances == []


def test_attachment_types_file_replaces_whitelist(
    tmp_path: Path,
    corpus: Path,
    recording_server: type[RecordingServer],
) -> None:
    types_file = tmp_path / "attachments.yaml"
    types_file.write_text("png: image/png\n.LOG: text/plain\n", encoding="utf-8")

    result = runner.invoke(app, ["--pv", "--features-dir", str(corpus), "--attachment-types", str(types_file)])

    assert result.exit_code == 0, result.output
    (server,) = recording_server.instances
    assert server.settings.attachment_types == {".png": "image/png", ".log": "text/plain"}


def test_attachment_types_file_must_be_a_mapping(
    tmp_path: Path,
    corpus: Path,
    recording_server: type[RecordingServer],
) -> None:
    types_file = tmp_path / "attachments.yaml"
    types_file.write_text("- image/png\n", encoding="utf-8")

    result = runner.invoke(app, ["--pv", "--features-dir", str(corpus), "--attachment-types", str(types_file)])

    assert result.exit_code == 2
    assert recording_server.instances == []
