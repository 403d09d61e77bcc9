"""
Tests for the reddit-intel command line entry point.

The orchestrator is built with a stub pipeline factory, so no HTTP happens.
"""

import json
from unittest.mock import patch

import pytest

from tests.conftest import StubPipeline


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Isolated working directory with a channels file and credentials set."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("VECTORDB_API_TOKEN", "tok")
    monkeypatch.setenv("REDDIT_CLIENT_ID", "cid")
    monkeypatch.setenv("REDDIT_CLIENT_SECRET", "csecret")
    monkeypatch.delenv("CHANNELS_CONFIG", raising=False)

    config_path = tmp_path / "channels.json"
    config_path.write_text(json.dumps({
        "r/alpha": {"enabled": True},
        "r/beta": {"enabled": True},
        "r/off": {"enabled": False},
    }))
    return config_path


def _run(argv, fail=()):
    from reddit_intel import cli
    from reddit_intel.jobs import JobOrchestrator

    def from_settings(settings, **kwargs):
        return JobOrchestrator(
            lambda channel, emit: StubPipeline(channel, emit, fail=channel.name in fail),
            max_concurrency=settings.max_concurrency,
        )

    with patch.object(cli, "setup_logging"), \
            patch.object(cli.JobOrchestrator, "from_settings", side_effect=from_settings):
        return cli.main(argv)


class TestArgumentValidation:

    def test_requires_window(self, cli_env, capsys):
        assert _run(["--config", str(cli_env)]) == 1
        assert "either hours or days" in capsys.readouterr().out

    def test_rejects_both_windows(self, cli_env, capsys):
        assert _run(["--hours", "1", "--days", "1", "--config", str(cli_env)]) == 1
        assert "both" in capsys.readouterr().out

    def test_rejects_non_positive(self, cli_env):
        assert _run(["--hours", "-3", "--config", str(cli_env)]) == 1

    @pytest.mark.parametrize("value", ["inf", "nan", "1e308"])
    def test_rejects_non_finite_or_huge_window(self, cli_env, value, capsys):
        assert _run(["--hours", value, "--config", str(cli_env)]) == 1
        assert "Error:" in capsys.readouterr().out

    def test_requires_store_token(self, cli_env, monkeypatch, capsys):
        monkeypatch.delenv("VECTORDB_API_TOKEN")

        assert _run(["--hours", "24", "--config", str(cli_env)]) == 1
        assert "VECTORDB_API_TOKEN" in capsys.readouterr().out

    def test_missing_config_file(self, cli_env, tmp_path):
        assert _run(["--hours", "24", "--config", str(tmp_path / "missing.json")]) == 1


class TestExecution:

    def test_success_prints_summary(self, cli_env, capsys):
        exit_code = _run(["--hours", "24", "--config", str(cli_env)])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "EXECUTION SUMMARY" in out
        assert "r/alpha" in out and "r/beta" in out
        assert "r/off" not in out
        assert "Total: 2 posts, 4 comments" in out

    def test_partial_failure_exits_zero(self, cli_env, capsys):
        assert _run(["--days", "1", "--config", str(cli_env)], fail={"r/alpha"}) == 0
        assert "FAIL r/alpha" in capsys.readouterr().out

    def test_all_channels_failed_exits_one(self, cli_env):
        assert _run(["--days", "1", "--config", str(cli_env)], fail={"r/alpha", "r/beta"}) == 1

    def test_no_enabled_channels_exits_zero(self, cli_env):
        cli_env.write_text(json.dumps({"r/off": {"enabled": False}}))

        assert _run(["--hours", "1", "--config", str(cli_env)]) == 0
