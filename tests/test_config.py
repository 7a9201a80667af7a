"""
Tests for configuration loading and saving
"""

import os

from unittest.mock import patch

from lensware.config import DEFAULTS, Config


class TestConfig:

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = Config()

        assert cfg.get("LW_TARGET_LANG") == "zh"
        assert cfg.get_int("LW_CACHE_SIZE") == 2048
        assert cfg.get_float("LW_CAPTION_MAX_AGE") == 30.0
        assert cfg.get_bool("LW_USE_PHRASEBOOK") is True

    def test_env_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text(
            "# comment\nLW_TARGET_LANG='es'\nLW_CACHE_SIZE=16\nUNRELATED=1\n", encoding="utf-8"
        )
        monkeypatch.chdir(tmp_path)
        cfg = Config()

        assert cfg.get("LW_TARGET_LANG") == "es"
        assert cfg.get_int("LW_CACHE_SIZE") == 16
        assert "UNRELATED" not in cfg.to_dict()

    def test_env_file_in_parent(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("LW_SOURCE_LANG=zh\n", encoding="utf-8")
        child = tmp_path / "a" / "b"
        child.mkdir(parents=True)
        monkeypatch.chdir(child)

        assert Config().get("LW_SOURCE_LANG") == "zh"

    def test_environment_wins(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("LW_TARGET_LANG=es\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        with patch.dict(os.environ, {"LW_TARGET_LANG": "fr"}):
            assert Config().get("LW_TARGET_LANG") == "fr"

    def test_bad_numbers_fall_back(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = Config()
        cfg.set("LW_CACHE_SIZE", "lots")
        cfg.set("LW_CAPTION_MAX_AGE", "soon")

        assert cfg.get_int("LW_CACHE_SIZE", 5) == 5
        assert cfg.get_float("LW_CAPTION_MAX_AGE", 1.5) == 1.5

    def test_save_new_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = Config()
        cfg.set("LW_TARGET_LANG", "es")
        cfg.save(tmp_path / ".env")

        content = (tmp_path / ".env").read_text(encoding="utf-8")
        assert "LW_TARGET_LANG=es" in content
        assert "# Translation" in content
        assert all(key in content for key in DEFAULTS)

    def test_save_updates_in_place(self, tmp_path, monkeypatch):
        env = tmp_path / ".env"
        env.write_text("# keep me\nLW_TARGET_LANG=zh\nOTHER=1\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        cfg = Config()
        cfg.set("LW_TARGET_LANG", "es")
        cfg.set("LW_SOURCE_LANG", "zh")
        cfg.save(keys_only=["LW_TARGET_LANG", "LW_SOURCE_LANG"])

        assert env.read_text(encoding="utf-8") == (
            "# keep me\nLW_TARGET_LANG=es\nOTHER=1\nLW_SOURCE_LANG=zh\n"
        )

    def test_reload(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = Config()
        cfg.set("LW_TARGET_LANG", "es")
        cfg.reload()
        assert cfg.get("LW_TARGET_LANG") == "zh"
