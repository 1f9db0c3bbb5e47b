"""Configuration helpers for the Jenkins to Mattermost relay."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]
CONFIG_ENV = "JENKINS_MATTERMOST_CONFIG"
DEFAULT_CONFIG_PATHS = [
    Path("/etc/jenkins-mattermost/notify.yaml"),
    REPO_ROOT / "configs" / "notify.yaml",
]

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "MATTERMOST_WEBHOOK_URL": ("mattermost", "webhook_url"),
    "MATTERMOST_ROOM": ("mattermost", "room"),
    "JENKINS_URL": ("jenkins", "url"),
    "JENKINS_USER": ("jenkins", "user"),
    "JENKINS_TOKEN": ("jenkins", "token"),
}


@dataclass
class RelayConfig:
    """Represents the YAML configuration shared by the CLI and the web listener."""

    raw: Dict[str, Any]
    source: Optional[Path] = None

    @classmethod
    def from_file(cls, path: str | Path) -> "RelayConfig":
        data = yaml.safe_load(Path(path).read_text())
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("Configuration root must be a mapping")
        return cls(raw=data, source=Path(path))

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def require(self, key: str) -> Any:
        if key not in self.raw:
            raise KeyError(f"Missing configuration key: {key}")
        return self.raw[key]

    def section(self, name: str) -> Dict[str, Any]:
        value = self.raw.get(name)
        return value if isinstance(value, dict) else {}

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> "RelayConfig":
        environ = os.environ if environ is None else environ
        for var, (section, key) in ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                self.raw.setdefault(section, {})
                if not isinstance(self.raw[section], dict):
                    self.raw[section] = {}
                self.raw[section][key] = value
        return self


def find_config(path: str | Path | None = None) -> Optional[Path]:
    """Return the first configuration file that exists, honouring explicit paths first."""
    if path:
        return Path(path)
    candidates = []
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        candidates.append(Path(env_path))
    candidates.extend(DEFAULT_CONFIG_PATHS)
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(path: str | Path | None = None) -> RelayConfig:
    """Load configuration, falling back to defaults when no file is present.

    An explicitly requested file must exist and parse; files found through the
    search path are skipped with a warning when they cannot be read.
    """
    config_path = find_config(path)
    if config_path is None:
        logger.debug("No configuration file found, using defaults")
        return RelayConfig(raw={}).apply_env()
    if path:
        return RelayConfig.from_file(config_path).apply_env()
    try:
        return RelayConfig.from_file(config_path).apply_env()
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.warning("Failed to load config from %s: %s", config_path, exc)
        return RelayConfig(raw={}).apply_env()
