"""Tests for the command-line interface."""

import asyncio

import pytest
from click.testing import CliRunner

from edgeoracle.cli.main import cli
from edgeoracle.core.models import StakeRecommendation
from edgeoracle.storage.history import history_session


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_args(tmp_path):
    """Point the CLI at defaults instead of the bundled config."""
    return ["--log-level", "WARNING", "--config", str(tmp_path / "none.json")]


class TestCli:
    """Tests for CLI commands against an empty or seeded store."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("evaluate", "resolve", "backtest", "history"):
            assert command in result.output

    def test_history_empty(self, runner, config_args, tmp_path):
        result = runner.invoke(
            cli, config_args + ["history", "--db-path", str(tmp_path / "h.db")]
        )

        assert result.exit_code == 0, result.output
        assert "No predictions stored." in result.output

    def test_backtest_empty_json(self, runner, config_args, tmp_path):
        result = runner.invoke(
            cli,
            config_args + ["backtest", "--db-path", str(tmp_path / "h.db"), "--output", "json"],
        )

        assert result.exit_code == 0, result.output
        assert '"total": 0' in result.output

    def test_history_seeded(self, runner, config_args, tmp_path):
        db_path = tmp_path / "h.db"
        rec = StakeRecommendation(
            market_id="m1",
            date="2024-03-01",
            outcomes=("Yes", "No"),
            predicted_outcome="Yes",
            probability_of_outcome_a=0.85,
            market_probability_of_outcome_a=0.70,
            confidence=8,
            stake_fraction=0.5,
        )

        async def seed():
            async with history_session(db_path) as store:
                await store.save_recommendations([rec])

        asyncio.run(seed())

        result = runner.invoke(cli, config_args + ["history", "--db-path", str(db_path)])

        assert result.exit_code == 0, result.output
        assert "2024-03-01" in result.output

    def test_evaluate_requires_api_key(self, runner, config_args, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        monkeypatch.setattr("edgeoracle.core.config.load_dotenv", lambda: False)

        result = runner.invoke(cli, config_args + ["evaluate", "--dry-run"])

        assert result.exit_code != 0
        assert "OPENROUTER_API_KEY" in result.output

    def test_invalid_config(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{oops")

        result = runner.invoke(cli, ["--config", str(path), "history"])

        assert result.exit_code != 0
        assert "Invalid config file" in result.output
