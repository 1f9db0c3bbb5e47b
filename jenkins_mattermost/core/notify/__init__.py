"""Mattermost delivery and lifecycle notifiers."""

from .active import ActiveNotifier
from .mattermost import MattermostService, parse_targets
from .send_step import AbortError, MattermostSendStep

__all__ = [
    "AbortError",
    "ActiveNotifier",
    "MattermostSendStep",
    "MattermostService",
    "parse_targets",
]
