"""
Tests for game configuration loading.
"""

from pathlib import Path

import pytest

from jeopardy.core.config import GameConfig, load_game_config


class TestLoadGameConfig:
    """Test file and environment configuration."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_game_config(tmp_path / "absent.json", environ={})
        assert config.case_id == "GAME-001"
        assert config.data_dir == Path("data")
        assert config.report_formats == ["csv", "txt"]
        assert config.min_players == 1
        assert config.max_players == 4
        assert not config.record_turn_events

    def test_file_values(self, tmp_path):
        path = tmp_path / "game.json"
        path.write_text(
            '{"case_id": "GAME-042", "question_format": "JSON", "report_formats": "md",'
            ' "record_turn_events": true, "unknown": 1}',
            encoding="utf-8",
        )
        config = load_game_config(path, environ={})
        assert config.case_id == "GAME-042"
        assert config.question_format == "json"
        assert config.report_formats == ["md"]
        assert config.record_turn_events

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "game.json"
        path.write_text('{"case_id": "GAME-042", "output_dir": "from-file"}', encoding="utf-8")
        config = load_game_config(
            path,
            environ={
                "JEOPARDY_CASE_ID": "GAME-ENV",
                "JEOPARDY_OUTPUT_DIR": str(tmp_path / "reports"),
                "JEOPARDY_DATA_DIR": str(tmp_path / "questions"),
            },
        )
        assert config.case_id == "GAME-ENV"
        assert config.output_dir == tmp_path / "reports"
        assert config.data_dir == tmp_path / "questions"

    def test_non_object_ignored(self, tmp_path):
        path = tmp_path / "game.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_game_config(path, environ={}).case_id == "GAME-001"


class TestGameConfig:
    def test_player_bounds(self):
        config = GameConfig()
        assert config.allows_player_count(1)
        assert config.allows_player_count(4)
        assert not config.allows_player_count(0)
        assert not config.allows_player_count(5)

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            GameConfig(min_players=3, max_players=2)

    @pytest.mark.parametrize("bounds", [{"max_players": 5}, {"min_players": 0}, {"min_players": 0, "max_players": 0}])
    def test_bounds_outside_game_limits(self, bounds):
        """A game seats one to four players whatever the config says."""
        with pytest.raises(ValueError):
            GameConfig(**bounds)

    def test_file_with_oversized_table_rejected(self, tmp_path):
        path = tmp_path / "game.json"
        path.write_text('{"max_players": 6}', encoding="utf-8")
        with pytest.raises(ValueError):
            load_game_config(path, environ={})
