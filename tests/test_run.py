from pathlib import Path

import pytest
from typer.testing import CliRunner

from autoqa import config
from autoqa.config import ENV_VARS
from autoqa.report import DEFAULT_SCRIPT_NAME
from autoqa.run import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def offline_env(monkeypatch):
    for name in ENV_VARS.values():
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    monkeypatch.setenv("AUTOQA_MOCK_LATENCY", "0")


def test_mock_run_completes_and_exports_script(tmp_path: Path):
    result = runner.invoke(
        app,
        ["https://example.com", "--mock", "--step-pause", "0", "--export", str(tmp_path)],
    )

    assert result.exit_code == 0, result.output
    script = tmp_path / DEFAULT_SCRIPT_NAME
    assert script.exists()
    assert "page.goto('https://example.com')" in script.read_text(encoding="utf-8")
    assert "Test Suite Execution Completed." in result.output


def test_invalid_url_exits_before_running():
    result = runner.invoke(app, ["not a url", "--mock"])

    assert result.exit_code == 2
    assert "Target acquired" not in result.output


def test_live_mode_without_key_is_rejected():
    result = runner.invoke(app, ["https://example.com", "--live"])

    assert result.exit_code == 2
