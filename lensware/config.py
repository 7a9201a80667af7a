"""
Lensware Configuration Module

Handles loading configuration from:
1. .env file
2. Environment variables
3. Default values

Usage:
    from lensware.config import config

    target = config.get("LW_TARGET_LANG", "zh")
    config.set("LW_TARGET_LANG", "es")
    config.save()
"""

__all__ = ["config", "Config", "DEFAULTS", "CONFIG_CATEGORIES"]

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

# Default configuration values
DEFAULTS = {
    # Translation
    "LW_SOURCE_LANG": "en",
    "LW_TARGET_LANG": "zh",
    "LW_GOOGLE_API_KEY": "",           # empty = hosted backend disabled
    "LW_GOOGLE_TRANSLATE_URL": "https://translation.googleapis.com/language/translate/v2",
    "LW_TRANSLATE_TIMEOUT": "10",      # seconds per hosted request
    "LW_TRANSLATE_WORKERS": "2",       # thread pool for async translations
    "LW_CACHE_SIZE": "2048",           # LRU bound for the translation cache
    "LW_DICTIONARY_FILE": "",          # optional YAML with extra phrases
    "LW_USE_PHRASEBOOK": "true",       # on-device phrase tables

    # Annotations
    "LW_CAPTION_MAX_AGE": "30",        # seconds before an annotation is evicted
    "LW_FACE_MATCH_POLICY": "nearest", # nearest, per_frame
    "LW_FACE_MATCH_DISTANCE": "0.2",   # max center distance (normalized)
    "LW_MIN_FACE_AREA": "0.0",         # faces smaller than this are ignored
    "LW_IDENTITY_CONFIDENCE": "0.8",   # center-face confidence for person_3
    "LW_RANDOM_SEED": "",              # fixed seed for caption templates
    "LW_VIEWPORT": "",                 # WxH, e.g. 1280x720

    # Logging
    "LW_LOG_LEVEL": "INFO",
    "LW_LOG_FILE": "",
}

# Configuration categories (used by `lw config --show` and full saves)
CONFIG_CATEGORIES = {
    "Translation": [
        ("LW_SOURCE_LANG", "Source Language", "Language of recognized text"),
        ("LW_TARGET_LANG", "Target Language", "Language shown on annotations"),
        ("LW_GOOGLE_API_KEY", "Google API Key", "Key for the hosted translation API"),
        ("LW_GOOGLE_TRANSLATE_URL", "Google API URL", "Hosted translation endpoint"),
        ("LW_TRANSLATE_TIMEOUT", "Timeout (seconds)", "Hosted request timeout"),
        ("LW_TRANSLATE_WORKERS", "Workers", "Concurrent translation workers"),
        ("LW_CACHE_SIZE", "Cache Size", "Maximum cached translations"),
        ("LW_DICTIONARY_FILE", "Dictionary File", "YAML file with extra phrase pairs"),
        ("LW_USE_PHRASEBOOK", "Phrasebook", "Enable on-device phrase tables (true/false)"),
    ],
    "Annotations": [
        ("LW_CAPTION_MAX_AGE", "Max Age (seconds)", "Age at which annotations are evicted"),
        ("LW_FACE_MATCH_POLICY", "Face Matching", "nearest or per_frame"),
        ("LW_FACE_MATCH_DISTANCE", "Match Distance", "Max center distance for face continuity"),
        ("LW_MIN_FACE_AREA", "Min Face Area", "Minimum face area (fraction of frame)"),
        ("LW_IDENTITY_CONFIDENCE", "Identity Confidence", "Confidence needed for center identity"),
        ("LW_RANDOM_SEED", "Random Seed", "Seed for caption template choice (empty = random)"),
        ("LW_VIEWPORT", "Viewport", "Display size WxH used for display rects"),
    ],
    "Logging": [
        ("LW_LOG_LEVEL", "Log Level", "Logging level: DEBUG, INFO, WARNING, ERROR"),
        ("LW_LOG_FILE", "Log File", "Path to log file (empty = console only)"),
    ],
}


class Config:
    """Configuration manager for Lensware"""

    def __init__(self):
        self._config: Dict[str, str] = {}
        self._env_file: Optional[Path] = None
        self._load()

    def _find_env_file(self) -> Optional[Path]:
        """Find .env file in current directory or parent directories"""
        current = Path.cwd()

        for _ in range(5):
            env_path = current / ".env"
            if env_path.exists():
                return env_path
            current = current.parent

        return None

    def _load(self):
        """Load configuration from .env file and environment"""
        self._config = DEFAULTS.copy()

        self._env_file = self._find_env_file()
        if self._env_file:
            self._load_env_file(self._env_file)

        # Environment wins over .env
        for key in DEFAULTS.keys():
            env_val = os.environ.get(key)
            if env_val is not None:
                self._config[key] = env_val

    def _load_env_file(self, path: Path):
        """Load configuration from .env file"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    if "=" in line:
                        key, _, value = line.partition("=")
                        key = key.strip()
                        value = value.strip().strip('"').strip("'")
                        if key in DEFAULTS:
                            self._config[key] = value
        except OSError:
            pass

    def get(self, key: str, default: Any = None) -> str:
        """Get configuration value"""
        return self._config.get(key, default or DEFAULTS.get(key, ""))

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get configuration value as boolean"""
        val = self.get(key, str(default))
        return val.lower() in ("true", "1", "yes", "on")

    def get_int(self, key: str, default: int = 0) -> int:
        """Get configuration value as integer"""
        try:
            return int(self.get(key, str(default)))
        except ValueError:
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Get configuration value as float"""
        try:
            return float(self.get(key, str(default)))
        except ValueError:
            return default

    def set(self, key: str, value: str):
        """Set configuration value"""
        self._config[key] = str(value)

    def save(self, path: Optional[Path] = None, keys_only: List[str] = None):
        """Save configuration to .env file.

        Existing lines are updated in place and unknown keys are preserved.
        A missing file is written in full, grouped by category.

        Args:
            path: Path to save to (default: current .env file)
            keys_only: If provided, only update these specific keys
        """
        if path is None:
            path = self._env_file or Path.cwd() / ".env"

        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                existing_lines = f.readlines()

            written = set()
            updated_lines = []
            for line in existing_lines:
                stripped = line.strip()
                if stripped and not stripped.startswith("#") and "=" in stripped:
                    key = stripped.split("=", 1)[0].strip()
                    wanted = keys_only is None or key in keys_only
                    if wanted and key in self._config:
                        updated_lines.append(f"{key}={self._config[key]}\n")
                        written.add(key)
                        continue
                updated_lines.append(line)

            # Keys requested explicitly but absent from the file
            for key in keys_only or []:
                if key not in written and key in self._config:
                    updated_lines.append(f"{key}={self._config[key]}\n")

            with open(path, "w", encoding="utf-8") as f:
                f.writelines(updated_lines)
        else:
            lines = []
            for category, items in CONFIG_CATEGORIES.items():
                lines.append(f"\n# {category}")
                for key, _label, _desc in items:
                    lines.append(f"{key}={self._config.get(key, DEFAULTS.get(key, ''))}")

            with open(path, "w", encoding="utf-8") as f:
                f.write("# Lensware Configuration\n")
                f.write("# Generated by: lw config --save\n")
                f.write("\n".join(lines))
                f.write("\n")

        self._env_file = path

    def to_dict(self) -> Dict[str, str]:
        """Get all configuration as dictionary"""
        return self._config.copy()

    def reload(self):
        """Reload configuration from files"""
        self._load()


# Global config instance
config = Config()
