"""The ``mattermostSend`` step: post an explicit message from a pipeline."""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Optional

from ..settings import NotifierSettings
from .active import ServiceFactory
from .mattermost import MattermostService

logger = logging.getLogger(__name__)


class AbortError(RuntimeError):
    """Raised to fail the calling build when a required notification could not be sent."""


def fix_empty(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return value


@dataclass
class MattermostSendStep:
    message: str
    color: Optional[str] = None
    channel: Optional[str] = None
    endpoint: Optional[str] = None
    icon: Optional[str] = None
    fail_on_error: bool = False

    function_name = "mattermostSend"
    display_name = "Send Mattermost message"

    def __post_init__(self) -> None:
        self.color = fix_empty(self.color)
        self.channel = fix_empty(self.channel)
        self.endpoint = fix_empty(self.endpoint)
        self.icon = fix_empty(self.icon)

    def resolve(self, settings: NotifierSettings) -> NotifierSettings:
        """Step values override the global settings; unset ones fall back to them."""
        return dataclasses.replace(
            settings,
            endpoint=self.endpoint if self.endpoint is not None else settings.endpoint,
            room=self.channel if self.channel is not None else settings.room,
            icon=self.icon if self.icon is not None else settings.icon,
        )

    def run(self, settings: NotifierSettings, service_factory: Optional[ServiceFactory] = None) -> bool:
        resolved = self.resolve(settings)
        color = self.color if self.color is not None else ""
        logger.debug(
            "Mattermost Send step configured values from global config - endpoint: %s, icon: %s, channel: %s, color: %s",
            self.endpoint is None, self.icon is None, self.channel is None, self.color is None,
        )
        with (service_factory or MattermostService.from_settings)(resolved) as service:
            published = service.publish(self.message, color)
        if not published and self.fail_on_error:
            raise AbortError("Mattermost notification failed. See logs for details.")
        if not published:
            logger.error("Mattermost notification failed. See logs for details.")
        return published
