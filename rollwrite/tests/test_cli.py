"""
Tests for the command-line interface.
"""

import json

import pytest

from ..cli import main
from ..engine_core.state import ReplayRecord


class TestCLI:
    """Tests for rollwrite subcommands."""

    def test_templates(self, capsys):
        main(["templates"])

        assert "meteor-miners" in capsys.readouterr().out

    def test_no_command_exits(self, capsys):
        with pytest.raises(SystemExit):
            main([])

    def test_validate_valid_file(self, tmp_path, capsys, ore_template_dict):
        path = tmp_path / "template.json"
        path.write_text(json.dumps(ore_template_dict))

        main(["validate", str(path)])

        assert "Template 'ore-test' is valid" in capsys.readouterr().out

    def test_validate_invalid_file(self, tmp_path, capsys, ore_template_dict):
        ore_template_dict["actions"][0]["effects"][0]["resource"] = "gold"
        path = tmp_path / "template.json"
        path.write_text(json.dumps(ore_template_dict))

        with pytest.raises(SystemExit):
            main(["validate", str(path)])

        assert "missing resource 'gold'" in capsys.readouterr().out

    def test_autoplay_then_verify(self, tmp_path, capsys):
        replay_path = tmp_path / "replay.json"

        main(["autoplay", "--seed", "42", "--output", str(replay_path)])
        record = ReplayRecord.from_json(replay_path.read_text())
        assert record.template_id == "meteor-miners"

        main(["verify", str(replay_path)])
        assert "Replay verified" in capsys.readouterr().out

    def test_verify_detects_tampering(self, tmp_path, capsys):
        replay_path = tmp_path / "replay.json"
        main(["autoplay", "--seed", "seven", "--output", str(replay_path)])
        data = json.loads(replay_path.read_text())
        data["finalScore"] += 100
        replay_path.write_text(json.dumps(data))

        with pytest.raises(SystemExit):
            main(["verify", str(replay_path)])

        assert "does NOT match" in capsys.readouterr().out
