"""Simple YAML configuration loader for the interview client."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_MIME_CANDIDATES = [
    "audio/ogg",
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/wav",
]

DEFAULTS: Dict[str, Any] = {
    "api": {
        "base_url": "http://localhost:8000/api",
        "timeout_seconds": None,
    },
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
        "mime_candidates": DEFAULT_MIME_CANDIDATES,
        "ffmpeg_path": None,
    },
    "auth": {
        "token": None,
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/interviewclient.log",
        "console_output": True,
    },
}


class InterviewClientConfig:
    """Interview client configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and relative paths resolve against the
                        current directory.
        """
        self.config_file: Optional[Path] = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULTS)
            return

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file, layered over the defaults."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        config = _merge(copy.deepcopy(DEFAULTS), loaded)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        log_path = config.get('logging', {}).get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'api.base_url').

        Args:
            key_path: Dot-separated key path (e.g., 'audio.sample_rate')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'api.base_url')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_api_base_url(self) -> str:
        """Get the interview service base URL; INTERVIEW_API_URL wins over the file."""
        base_url = os.environ.get("INTERVIEW_API_URL") or self.get('api.base_url')
        if not base_url:
            raise ValueError("api.base_url is not configured")
        return base_url.rstrip('/')

    def get_auth_token(self) -> Optional[str]:
        """Bearer token for report calls, or None when running anonymously."""
        return os.environ.get("INTERVIEW_API_TOKEN") or self.get('auth.token') or None

    def get_mime_candidates(self) -> List[str]:
        candidates = self.get('audio.mime_candidates') or DEFAULT_MIME_CANDIDATES
        if isinstance(candidates, str):
            candidates = [candidates]
        return list(candidates)

    def get_log_file_path(self) -> str:
        log_path = self.get('logging.file_path', 'logs/interviewclient.log')
        return str(Path(log_path).absolute())


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


_config: Optional[InterviewClientConfig] = None


def get_config() -> InterviewClientConfig:
    """Return the process-wide configuration, creating defaults on first use."""
    global _config
    if _config is None:
        _config = InterviewClientConfig()
    return _config


def reload_config(config_path: Optional[str] = None) -> InterviewClientConfig:
    """Load configuration from ``config_path`` and make it the process-wide one."""
    global _config
    _config = InterviewClientConfig(config_path)
    return _config
