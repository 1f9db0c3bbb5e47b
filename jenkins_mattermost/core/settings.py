"""Per-job notifier settings resolved from the YAML configuration."""
from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..utils.proxy import ProxyConfig

if TYPE_CHECKING:
    from .config import RelayConfig


class CommitInfoChoice(Enum):
    """How much commit information goes into the attachment text."""

    NONE = "none"
    AUTHORS = "authors"
    AUTHORS_AND_TITLES = "authors_and_titles"

    @classmethod
    def from_string(cls, value: Any) -> "CommitInfoChoice":
        if isinstance(value, cls):
            return value
        normalized = str(value or "none").strip().lower().replace("-", "_").replace(" ", "_")
        for choice in cls:
            if choice.value == normalized:
                return choice
        raise ValueError(f"Unknown commit info choice: {value}")

    @property
    def show_author(self) -> bool:
        return self is not CommitInfoChoice.NONE

    @property
    def show_title(self) -> bool:
        return self is CommitInfoChoice.AUTHORS_AND_TITLES

    @property
    def show_anything(self) -> bool:
        return self.show_author or self.show_title


# notify.yaml keys under `notify:` mapped onto NotifierSettings attributes
_NOTIFY_KEYS = {
    "start": "notify_start",
    "success": "notify_success",
    "aborted": "notify_aborted",
    "not_built": "notify_not_built",
    "unstable": "notify_unstable",
    "failure": "notify_failure",
    "back_to_normal": "notify_back_to_normal",
    "repeated_failure": "notify_repeated_failure",
    "test_summary": "include_test_summary",
    "commit_info": "commit_info_choice",
    "custom_message": "custom_message",
}

_MATTERMOST_KEYS = {
    "webhook_url": "endpoint",
    "room": "room",
    "icon": "icon",
    "timeout": "timeout",
}


@dataclass
class NotifierSettings:
    endpoint: str = ""
    room: str = ""
    icon: str = ""
    build_server_url: str = ""
    timeout: float = 10.0
    notify_start: bool = False
    notify_success: bool = False
    notify_aborted: bool = False
    notify_not_built: bool = False
    notify_unstable: bool = False
    notify_failure: bool = True
    notify_back_to_normal: bool = True
    notify_repeated_failure: bool = False
    include_test_summary: bool = False
    commit_info_choice: CommitInfoChoice = CommitInfoChoice.NONE
    custom_message: str = ""
    proxy: Optional[ProxyConfig] = None

    def __post_init__(self) -> None:
        self.commit_info_choice = CommitInfoChoice.from_string(self.commit_info_choice)
        if self.build_server_url and not self.build_server_url.endswith("/"):
            self.build_server_url += "/"
        self.timeout = float(self.timeout)

    @property
    def include_custom_message(self) -> bool:
        return bool(self.custom_message)

    @classmethod
    def from_config(cls, config: "RelayConfig", job: Optional[str] = None) -> "NotifierSettings":
        """Merge the global ``mattermost``/``notify`` sections with ``jobs.<job>`` overrides."""
        values: Dict[str, Any] = {}
        jenkins = config.section("jenkins")
        build_server_url = jenkins.get("build_server_url") or jenkins.get("url")
        if build_server_url:
            values["build_server_url"] = str(build_server_url)

        def _apply(mattermost: Dict[str, Any], notify: Dict[str, Any]) -> None:
            for key, attr in _MATTERMOST_KEYS.items():
                if mattermost.get(key) not in (None, ""):
                    values[attr] = mattermost[key]
            for key, attr in _NOTIFY_KEYS.items():
                if key in notify and notify[key] is not None:
                    values[attr] = notify[key]

        _apply(config.section("mattermost"), config.section("notify"))
        if job:
            override = (config.section("jobs").get(job) or {})
            _apply(override.get("mattermost") or {}, override.get("notify") or {})

        known = {f.name for f in fields(cls)}
        settings = cls(**{k: v for k, v in values.items() if k in known})
        settings.proxy = ProxyConfig.from_mapping(config.section("proxy"))
        return settings
