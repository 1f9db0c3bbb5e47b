"""React to build lifecycle events by publishing to Mattermost."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from ..decision import build_color, should_publish, start_color
from ..message import MessageBuilder, UpstreamResolver
from ..model import Build, Project
from ..settings import NotifierSettings
from .mattermost import MattermostService

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[NotifierSettings], MattermostService]


class ActiveNotifier:
    """Translate started/completed events into webhook posts."""

    def __init__(
        self,
        settings: NotifierSettings,
        service_factory: Optional[ServiceFactory] = None,
        upstream_resolver: Optional[UpstreamResolver] = None,
    ) -> None:
        self.settings = settings
        self.service_factory = service_factory or MattermostService.from_settings
        self.upstream_resolver = upstream_resolver

    def _builder(self, project: Project, build: Build) -> MessageBuilder:
        return MessageBuilder(self.settings, project, build, self.upstream_resolver)

    def _service(self) -> MattermostService:
        return self.service_factory(self.settings)

    def _publish(self, payload: dict, color: str) -> bool:
        with self._service() as service:
            return service.publish_payload(payload, color)

    def started(self, project: Project, build: Build) -> bool:
        return self._publish(self.start_payload(project, build), start_color(project, build))

    def start_payload(self, project: Project, build: Build) -> dict:
        message = (
            self._builder(project, build)
            .append_project_as_author()
            .append_commits_as_text()
            .append_changes()
        )
        return message.payload

    def completed(self, project: Project, build: Build) -> bool:
        if not should_publish(project, build, self.settings):
            return False
        return self._publish(self.build_status_payload(project, build), build_color(build.result))

    def build_status_payload(self, project: Project, build: Build) -> dict:
        message = (
            self._builder(project, build)
            .append_project_as_author()
            .append_commits_as_text()
            .append_status()
            .append_duration()
            .append_changes()
            .append_test_summary()
        )
        return message.payload

    def deleted(self, project: Project, build: Build) -> None:
        pass

    def finalized(self, project: Project, build: Build) -> None:
        pass
