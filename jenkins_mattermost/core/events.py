"""Route Jenkins lifecycle phases to the active notifier."""
from __future__ import annotations

import logging
from typing import Optional

from .config import RelayConfig
from .decision import should_publish
from .ingest.jenkins_api import JenkinsClient
from .model import Build, Project
from .notify.active import ActiveNotifier, ServiceFactory
from .settings import NotifierSettings

logger = logging.getLogger(__name__)

STARTED = "STARTED"
COMPLETED = "COMPLETED"
IGNORED_PHASES = ("QUEUED", "FINALIZED", "DELETED")


class LifecycleDispatcher:
    """Resolve the build behind an event and hand it to ``ActiveNotifier``.

    Returns one of ``"sent"``, ``"skipped"`` (rules said no), ``"ignored"``
    (phase without a message) or ``"failed"`` (the webhook did not accept it).
    """

    def __init__(
        self,
        config: RelayConfig,
        client: Optional[JenkinsClient] = None,
        service_factory: Optional[ServiceFactory] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.service_factory = service_factory

    def notifier_for(self, job: str) -> ActiveNotifier:
        settings = NotifierSettings.from_config(self.config, job=job)
        resolver = self.client.resolve_upstream if self.client else None
        return ActiveNotifier(settings, service_factory=self.service_factory, upstream_resolver=resolver)

    def resolve(self, job: str, number: Optional[int] = None, project: Optional[Project] = None) -> tuple[Project, Build]:
        if project is None:
            if self.client is None:
                raise LookupError("No Jenkins connection configured and no project document given")
            project = self.client.get_project(job)
        if number is None:
            build = project.last_build()
        else:
            build = project.build_by_number(number)
            if build is None and self.client is not None:
                build = self.client.get_build(job, number)
        if build is None:
            raise LookupError(f"No build {number if number is not None else '(last)'} for job {job}")
        return project, build

    def dispatch(
        self,
        phase: str,
        job: str,
        number: Optional[int] = None,
        project: Optional[Project] = None,
    ) -> str:
        phase = (phase or "").upper()
        if phase not in (STARTED, COMPLETED):
            if phase in IGNORED_PHASES:
                logger.debug("Ignoring %s event for %s", phase, job)
            else:
                logger.warning("Unknown build phase %r for %s", phase, job)
            return "ignored"

        notifier = self.notifier_for(job)
        if phase == STARTED and not notifier.settings.notify_start:
            return "skipped"

        project, build = self.resolve(job, number, project)
        if phase == STARTED:
            sent = notifier.started(project, build)
        else:
            if not should_publish(project, build, notifier.settings):
                return "skipped"
            sent = notifier.completed(project, build)
        logger.info("%s %s %s: %s", phase, project.full_display_name, build.display_name, "sent" if sent else "failed")
        return "sent" if sent else "failed"
