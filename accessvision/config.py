"""
AccessVision Configuration Module

Handles loading configuration from:
1. .env file
2. Environment variables
3. Default values

Usage:
    from accessvision.config import config

    model = config.get("AV_MODEL", "gemini-2.5-flash")
    config.set("AV_SPEECH_RATE", "1.2")
    config.save()
"""

__all__ = ["config", "Config", "DEFAULTS", "CONFIG_CATEGORIES"]

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

# Default configuration values
DEFAULTS = {
    # Analysis service
    "AV_LLM_PROVIDER": "gemini",        # gemini, ollama, openai
    "AV_MODEL": "gemini-2.5-flash",
    "AV_GEMINI_API_KEY": "",
    "AV_OPENAI_API_KEY": "",
    "AV_OLLAMA_URL": "http://localhost:11434",
    "AV_LLM_TIMEOUT": "30",
    "AV_LLM_RETRIES": "0",              # live narration prefers a fast fallback
    "AV_LLM_TEMPERATURE": "0.4",

    # Camera
    "AV_CAMERA_DEVICE": "0",
    "AV_CAMERA_WIDTH": "1280",
    "AV_CAMERA_HEIGHT": "720",

    # Speech
    "AV_TTS_ENGINE": "auto",            # auto, espeak-ng, espeak, say

    # Narration
    "AV_MODE": "general",               # general, text, social, navigation, shopping
    "AV_VERBOSITY": "standard",         # minimal, standard, detailed
    "AV_SPEECH_RATE": "1.0",            # 0.5 - 2.0
    "AV_AUTO_NARRATION": "false",
    "AV_AUTO_INTERVAL_MS": "4000",      # 2000, 4000, 8000

    # Logging
    "AV_LOG_LEVEL": "INFO",
    "AV_LOG_FILE": "",
}

# Configuration categories used when writing a fresh .env
CONFIG_CATEGORIES = {
    "Analysis Service": [
        ("AV_LLM_PROVIDER", "Provider", "Analysis provider: gemini, ollama, openai"),
        ("AV_MODEL", "Vision Model", "Model used for scene analysis"),
        ("AV_GEMINI_API_KEY", "Gemini API Key", "API key for Google Gemini"),
        ("AV_OPENAI_API_KEY", "OpenAI API Key", "API key for OpenAI models"),
        ("AV_OLLAMA_URL", "Ollama URL", "Ollama server URL"),
        ("AV_LLM_TIMEOUT", "Timeout (seconds)", "Request timeout"),
        ("AV_LLM_RETRIES", "Retries", "Retries after timeouts / HTTP errors"),
        ("AV_LLM_TEMPERATURE", "Temperature", "Sampling temperature"),
    ],
    "Camera": [
        ("AV_CAMERA_DEVICE", "Device", "Camera index or stream URL"),
        ("AV_CAMERA_WIDTH", "Width", "Requested capture width"),
        ("AV_CAMERA_HEIGHT", "Height", "Requested capture height"),
    ],
    "Speech": [
        ("AV_TTS_ENGINE", "TTS Engine", "Text-to-speech engine: auto, espeak-ng, espeak, say"),
    ],
    "Narration": [
        ("AV_MODE", "Mode", "Initial mode: general, text, social, navigation, shopping"),
        ("AV_VERBOSITY", "Verbosity", "minimal, standard, detailed"),
        ("AV_SPEECH_RATE", "Speech Rate", "Reading speed multiplier (0.5 - 2.0)"),
        ("AV_AUTO_NARRATION", "Auto Narration", "Start with auto-narration on (true/false)"),
        ("AV_AUTO_INTERVAL_MS", "Auto Interval", "Milliseconds between auto shots: 2000, 4000, 8000"),
    ],
    "Logging": [
        ("AV_LOG_LEVEL", "Log Level", "Logging level: DEBUG, INFO, WARNING, ERROR"),
        ("AV_LOG_FILE", "Log File", "Path to log file (empty = console only)"),
    ],
}


class Config:
    """Configuration manager for AccessVision"""

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
            with open(path, "r") as f:
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

        Existing files are updated in place (unknown keys and comments are
        preserved). A missing file is written in full, grouped by category.

        Args:
            path: Path to save to (default: current .env file)
            keys_only: If provided, only update these specific keys
        """
        if path is None:
            path = self._env_file or Path.cwd() / ".env"

        if path.exists():
            with open(path, "r") as f:
                existing_lines = f.readlines()

            updated_lines = []
            seen = set()
            for line in existing_lines:
                stripped = line.strip()
                if stripped and not stripped.startswith("#") and "=" in stripped:
                    key = stripped.split("=", 1)[0].strip()
                    wanted = keys_only is None or key in keys_only
                    if wanted and key in self._config:
                        updated_lines.append(f"{key}={self._config[key]}\n")
                        seen.add(key)
                        continue
                updated_lines.append(line)

            # Keys explicitly requested but not yet present get appended
            for key in keys_only or []:
                if key not in seen and key in self._config:
                    updated_lines.append(f"{key}={self._config[key]}\n")

            with open(path, "w") as f:
                f.writelines(updated_lines)
        else:
            lines = []
            for category, items in CONFIG_CATEGORIES.items():
                lines.append(f"\n# {category}")
                for key, label, desc in items:
                    lines.append(f"{key}={self._config.get(key, DEFAULTS.get(key, ''))}")

            with open(path, "w") as f:
                f.write("# AccessVision Configuration\n")
                f.write("# Generated by: accessvision config --set\n")
                f.write("\n".join(lines) + "\n")

        self._env_file = path

    def to_dict(self) -> Dict[str, str]:
        """Get all configuration as dictionary"""
        return self._config.copy()

    def reload(self):
        """Reload configuration from files"""
        self._load()


# Global config instance
config = Config()
