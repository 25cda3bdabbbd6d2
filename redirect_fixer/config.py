import json
import logging
import os
from dataclasses import dataclass, fields
from typing import Dict, Optional, Any

from redirect_fixer.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_PATH = "redirect_fixer.json"
DEFAULT_USER_AGENT = "RedirectFixer/0.1 (+link audit)"


def load_config(path: str = CONFIG_FILE_PATH) -> Optional[Dict[str, Any]]:
    """Loads the configuration from a JSON file."""
    if not os.path.exists(path):
        logger.error(f"Configuration file not found: {path}")
        return None
    try:
        with open(path, 'r') as f:
            config_data = json.load(f)
        logger.info(f"Successfully loaded configuration from {path}")
        if not validate_config(config_data):
            return None
        return config_data
    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON from {path}: {e}")
        return None
    except OSError as e:
        logger.error(f"Could not read configuration file {path}: {e}")
        return None


def validate_config(config: Dict[str, Any]) -> bool:
    """Validates the structure of the configuration (flat key/value object)."""
    if not isinstance(config, dict):
        logger.error("Configuration must be a dictionary.")
        return False

    known = _field_names(ResolverConfig) | _field_names(BatchConfig)
    for key in config:
        if key not in known:
            logger.warning(f"Unknown configuration key '{key}' will be ignored.")

    for key in ("home_host", "target_host", "username", "password", "user_agent"):
        if key in config and not isinstance(config[key], str):
            logger.error(f"Value for key '{key}' must be a string.")
            return False

    for key in ("timeout_seconds", "max_redirects", "max_retries",
                "inter_request_delay_seconds", "limit", "offset"):
        value = config.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
            logger.error(f"Value for key '{key}' must be a number.")
            return False

    logger.info("Configuration validation successful.")
    return True


def _field_names(cls) -> set:
    return {f.name for f in fields(cls)}


def _pick(cls, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Keep only the keys `cls` knows about, dropping None overrides."""
    names = _field_names(cls)
    return {k: v for k, v in (data or {}).items() if k in names and v is not None}


@dataclass(frozen=True)
class ResolverConfig:
    """
    2.0 Settings for a RedirectResolver and its HEAD client.

    - timeout_seconds: per-request timeout (slow origins are common)
    - max_redirects: upper bound on the redirect chain of one resolution
    - user_agent: User-Agent header sent with every request
    - max_retries: transport-level retries on connection/read failures
    """
    timeout_seconds: float = 30
    max_redirects: int = 20
    user_agent: str = DEFAULT_USER_AGENT
    max_retries: int = 0

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ConfigError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.max_redirects < 1:
            raise ConfigError(f"max_redirects must be at least 1, got {self.max_redirects}")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries cannot be negative, got {self.max_retries}")
        if not isinstance(self.user_agent, str) or not self.user_agent.strip():
            logger.warning(f"Invalid user_agent in config. Using default: {DEFAULT_USER_AGENT}")
            object.__setattr__(self, "user_agent", DEFAULT_USER_AGENT)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "ResolverConfig":
        defaults = {
            "timeout_seconds": 30,
            "max_redirects": 20,
            "user_agent": DEFAULT_USER_AGENT,
            "max_retries": 0,
        }
        return cls(**{**defaults, **_pick(cls, data)})


@dataclass(frozen=True)
class BatchConfig:
    """
    3.0 Settings for one batch run.

    home_host/target_host form the rewrite rule applied to every input,
    username/password enable Basic authentication, limit 0 means no limit.
    """
    home_host: str = ""
    target_host: str = ""
    username: str = ""
    password: str = ""
    inter_request_delay_seconds: float = 0
    limit: int = 0
    offset: int = 0

    def __post_init__(self):
        # Soft values fall back to 0 instead of failing the run
        for name in ("inter_request_delay_seconds", "limit", "offset"):
            if getattr(self, name) < 0:
                logger.warning(f"Negative {name} in config. Using 0.")
                object.__setattr__(self, name, 0)
        for name in ("home_host", "target_host"):
            object.__setattr__(self, name, (getattr(self, name) or "").strip())

    @property
    def credentials(self) -> Optional[tuple]:
        if self.username and self.password:
            return (self.username, self.password)
        return None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "BatchConfig":
        defaults = {
            "home_host": "",
            "target_host": "",
            "username": "",
            "password": "",
            "inter_request_delay_seconds": 0,
            "limit": 0,
            "offset": 0,
        }
        return cls(**{**defaults, **_pick(cls, data)})
