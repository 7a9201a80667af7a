"""
Tests for the lw command-line interface
"""

import json

import pytest

from lensware.cli import create_parser, run_cli
from lensware.config import config

RECORDING = """
frames:
  - t: 0
    texts:
      - text: Exit
        box: [0.1, 0.8, 0.2, 0.05]
    faces:
      - box: [0.05, 0.3, 0.2, 0.3]
        confidence: 0.9
        tracking_id: a
  - t: 1
    texts: []
"""


class CLITestBase:

    def setup_method(self):
        self.original_config = config.to_dict()
        config.set("LW_GOOGLE_API_KEY", "")
        config.set("LW_SOURCE_LANG", "en")
        config.set("LW_TARGET_LANG", "zh")
        config.set("LW_DICTIONARY_FILE", "")
        config.set("LW_LOG_FILE", "")

    def teardown_method(self):
        for key, value in self.original_config.items():
            config.set(key, value)


class TestParser:

    def test_commands(self):
        parser = create_parser()

        args = parser.parse_args(["translate", "hello", "world", "-t", "es"])
        assert args.command == "translate"
        assert args.text == ["hello", "world"]
        assert args.target == "es"

        args = parser.parse_args(["replay", "s.yaml", "--viewport", "1280x720", "--json"])
        assert args.file == "s.yaml"
        assert args.viewport == "1280x720"
        assert args.json is True

    def test_no_command_shows_help(self, capsys):
        assert run_cli([]) == 0
        assert "usage: lw" in capsys.readouterr().out


class TestTranslateCommand(CLITestBase):

    def test_translate(self, capsys):
        assert run_cli(["translate", "hello", "xyz123"]) == 0
        assert capsys.readouterr().out.splitlines() == ["你好", "xyz123"]

    def test_translate_other_target(self, capsys):
        assert run_cli(["translate", "thank you", "--target", "es", "--json"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload == [{"text": "thank you", "translation": "gracias", "source": "en", "target": "es"}]


class TestReplayCommand(CLITestBase):

    def write_recording(self, tmp_path):
        path = tmp_path / "session.yaml"
        path.write_text(RECORDING, encoding="utf-8")
        return str(path)

    def test_replay_json(self, tmp_path, capsys):
        path = self.write_recording(tmp_path)

        assert run_cli(["replay", path, "--json", "--seed", "1", "--viewport", "100x100"]) == 0
        payload = json.loads(capsys.readouterr().out)

        assert payload["frames"] == 2
        (face,) = payload["annotations"]
        assert face["kind"] == "face"
        assert face["state"] == "stale"
        assert face["display_rect"]["x"] == pytest.approx(5.0)
        assert payload["stats"]["active_text_count"] == 0

    def test_replay_with_demo_persons(self, tmp_path, capsys):
        path = self.write_recording(tmp_path)

        assert run_cli(["replay", path, "--json", "--demo-persons"]) == 0
        (face,) = json.loads(capsys.readouterr().out)["annotations"]
        assert "John" in face["original_text"]
        assert face["is_personalized"] is True

    def test_replay_table(self, tmp_path, capsys):
        path = tmp_path / "one.yaml"
        path.write_text("frames:\n  - texts: [{text: Exit, box: [0.1, 0.8, 0.2, 0.05]}]\n", encoding="utf-8")

        assert run_cli(["replay", str(path)]) == 0
        out = capsys.readouterr().out
        assert "出口" in out
        assert "Exit" in out

    def test_missing_file(self, tmp_path, capsys):
        assert run_cli(["replay", str(tmp_path / "nope.yaml")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_bad_viewport(self, tmp_path, capsys):
        path = self.write_recording(tmp_path)
        assert run_cli(["replay", path, "--viewport", "huge"]) == 1

    def test_malformed_recording_reports_error(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("frames:\n  - faces: [{box: [0, 0, 0.1, 0.1], confidence: high}]\n", encoding="utf-8")

        assert run_cli(["replay", str(path)]) == 1
        err = capsys.readouterr().err
        assert "Invalid confidence" in err
        assert "Fatal" not in err


class TestConfigCommand(CLITestBase):

    def test_show_hides_keys(self, capsys):
        config.set("LW_GOOGLE_API_KEY", "secret")

        assert run_cli(["config", "--show"]) == 0
        out = capsys.readouterr().out
        assert "LW_TARGET_LANG=zh" in out
        assert "LW_GOOGLE_API_KEY=******" in out
        assert "secret" not in out

    def test_get(self, capsys):
        assert run_cli(["config", "--get", "LW_TARGET_LANG"]) == 0
        assert capsys.readouterr().out.strip() == "LW_TARGET_LANG=zh"

    def test_set_saves(self, capsys):
        assert run_cli(["config", "--set", "LW_TARGET_LANG", "es"]) == 0
        assert config.get("LW_TARGET_LANG") == "es"
        config.save.assert_called_once_with(keys_only=["LW_TARGET_LANG"])
