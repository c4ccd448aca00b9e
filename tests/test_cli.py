"""
Smoke tests for the typer CLI.
"""

import csv

import pytest
from typer.testing import CliRunner

from jeopardy.services.cli import app


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def play_env(tmp_path):
    return {"JEOPARDY_OUTPUT_DIR": str(tmp_path / "out"), "JEOPARDY_CASE_ID": "GAME-CLI"}


def report_rows(out_dir):
    (path,) = out_dir.glob("*.csv")
    with path.open(newline="", encoding="utf-8") as handle:
        return path, list(csv.reader(handle))


class TestFormats:
    def test_lists_registries(self, runner):
        result = runner.invoke(app, ["formats"])
        assert result.exit_code == 0
        assert "Question formats: csv, json, xml" in result.output
        assert "Report formats: csv, txt, json, md" in result.output


class TestInspect:
    def test_sample_bank(self, runner, data_dir):
        result = runner.invoke(app, ["inspect", str(data_dir / "sample_game_CSV.csv")])
        assert result.exit_code == 0
        assert "9 questions in 3 categories (csv)" in result.output
        assert "Functions: 100, 200, 300" in result.output

    def test_explicit_format(self, runner, data_dir):
        result = runner.invoke(app, ["inspect", str(data_dir / "sample_game_XML.xml"), "--format", "xml"])
        assert result.exit_code == 0
        assert "(xml)" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["inspect", str(tmp_path / "missing.csv")])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestPlay:
    def test_full_game(self, runner, tmp_path, math_csv, play_env):
        """A scripted single-question game writes the CSV report."""
        result = runner.invoke(
            app,
            [
                "play",
                "--config", str(tmp_path / "absent.json"),
                "--file", str(math_csv),
                "--player", "Alice",
                "--report", "csv",
            ],
            input="Math\n100\nA\n",
            env=play_env,
        )

        assert result.exit_code == 0, result.output
        assert "That is correct!" in result.output
        path, rows = report_rows(tmp_path / "out")
        assert path.name.endswith("_GAME-CLI.csv")
        activities = [row[2] for row in rows[1:]]
        assert activities[-2:] == ["GAME_OVER", "GENERATE_REPORT"]
        assert "ENTER_PLAYER_NAME" in activities

    def test_reprompts_invalid_input(self, runner, tmp_path, math_csv, play_env):
        result = runner.invoke(
            app,
            [
                "play",
                "--config", str(tmp_path / "absent.json"),
                "--file", str(math_csv),
                "--player", "Alice",
                "--report", "csv",
            ],
            input="Art\nmath\n999\n100\nZ\nb\n",
            env=play_env,
        )

        assert result.exit_code == 0, result.output
        assert "Invalid category" in result.output
        assert "Invalid value" in result.output
        assert "Invalid option" in result.output
        assert "The correct answer is A) 4" in result.output

    def test_quit_records_exit(self, runner, tmp_path, grid_csv, play_env):
        result = runner.invoke(
            app,
            [
                "play",
                "--config", str(tmp_path / "absent.json"),
                "--file", str(grid_csv),
                "--player", "Alice",
                "--player", "Bob",
                "--report", "csv",
            ],
            input="q\n",
            env=play_env,
        )

        assert result.exit_code == 0, result.output
        _, rows = report_rows(tmp_path / "out")
        assert [row[2] for row in rows[1:]][-3:] == ["EXIT_GAME", "GAME_OVER", "GENERATE_REPORT"]

    def test_prompts_for_players(self, runner, tmp_path, math_csv, play_env):
        result = runner.invoke(
            app,
            ["play", "--config", str(tmp_path / "absent.json"), "--file", str(math_csv), "--report", "csv"],
            input="7\n1\n\nAlice\nMath\n100\nA\n",
            env=play_env,
        )
        assert result.exit_code == 0, result.output
        assert "between 1 and 4" in result.output

    def test_missing_bank_fails(self, runner, tmp_path, play_env):
        result = runner.invoke(
            app,
            [
                "play",
                "--config", str(tmp_path / "absent.json"),
                "--file", str(tmp_path / "missing.csv"),
                "--player", "Alice",
            ],
            env=play_env,
        )
        assert result.exit_code == 1
        assert "Could not load questions" in result.output

    def test_unknown_report_format(self, runner, tmp_path, math_csv, play_env):
        result = runner.invoke(
            app,
            ["play", "--config", str(tmp_path / "absent.json"), "--file", str(math_csv), "--report", "pdf"],
            env=play_env,
        )
        assert result.exit_code == 1
        assert "Unknown report format" in result.output

    def test_out_of_range_config_fails(self, runner, tmp_path, math_csv, play_env):
        config = tmp_path / "game.json"
        config.write_text('{"max_players": 9}', encoding="utf-8")
        result = runner.invoke(
            app,
            ["play", "--config", str(config), "--file", str(math_csv), "--player", "Alice"],
            env=play_env,
        )
        assert result.exit_code == 1
        assert "invalid config" in result.output

    def test_superscript_value_reprompts(self, runner, tmp_path, math_csv, play_env):
        result = runner.invoke(
            app,
            [
                "play",
                "--config", str(tmp_path / "absent.json"),
                "--file", str(math_csv),
                "--player", "Alice",
                "--report", "csv",
            ],
            input="Math\n²\n100\nA\n",
            env=play_env,
        )
        assert result.exit_code == 0, result.output
        assert "Invalid value" in result.output
        assert "That is correct!" in result.output
