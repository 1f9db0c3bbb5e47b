"""Builds the Mattermost attachment payload for a build."""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from . import decision
from .model import AffectedFile, Build, ChangeEntry, EditType, Project
from .settings import NotifierSettings
from ..utils.envvars import expand

logger = logging.getLogger(__name__)

MAX_LISTED_FILES = 8

UpstreamResolver = Callable[[str, int], Optional[Build]]


class MessageBuilder:
    """Chainable builder around a single-attachment Mattermost payload."""

    def __init__(
        self,
        settings: NotifierSettings,
        project: Project,
        build: Build,
        upstream_resolver: Optional[UpstreamResolver] = None,
    ) -> None:
        self.settings = settings
        self.project = project
        self.build = build
        self.upstream_resolver = upstream_resolver
        self.fields: List[Dict[str, Any]] = []
        self.attachment: Dict[str, Any] = {"fields": self.fields}
        self.payload: Dict[str, Any] = {"attachments": [self.attachment]}

    def append_project_as_author(self) -> "MessageBuilder":
        self.attachment["author_name"] = f"{self.project.full_display_name} {self.build.display_name}"
        self.attachment["author_link"] = self.settings.build_server_url + self.build.url
        return self

    def append_status(self) -> "MessageBuilder":
        self._field("Status", decision.status_message(self.project, self.build), short=True)
        return self

    def append_duration(self) -> "MessageBuilder":
        if decision.status_message(self.project, self.build) == decision.BACK_TO_NORMAL_STATUS_MESSAGE:
            duration = decision.back_to_normal_duration(self.project, self.build)
        else:
            duration = self.build.duration_string()
        self._field("Duration", duration, short=True)
        return self

    def append_commits_as_text(self) -> "MessageBuilder":
        if not self.settings.commit_info_choice.show_anything:
            return self
        self.attachment["text"] = self.commit_list(self.build)
        return self

    def append_changes(self) -> "MessageBuilder":
        changes = self.changes()
        if changes is None:
            return self
        self._field("Changes", changes, short=False)
        return self

    def append_test_summary(self) -> "MessageBuilder":
        if not self.settings.include_test_summary:
            return self
        summary = self.build.test_summary
        if summary is None:
            value = "No Tests found."
        else:
            value = (
                "| Passed | Failed | Skipped |\n"
                "|  :---: |  :---: |  :---:  |\n"
                f"| {summary.passed}| {summary.failed}| {summary.skipped} |"
            )
        self._field("Test Summary", value, short=False)
        return self

    def changes(self) -> Optional[str]:
        """The "Started by changes from ..." block, or None without changes."""
        if not self.build.change_set_computed:
            logger.info("No change set computed...")
            return None
        entries = list(self.build.change_set)
        if not entries:
            logger.info("Empty change...")
            return None

        authors = list(dict.fromkeys(entry.author for entry in entries))
        files = _unique_files(entries)

        lines = [
            ":checkered_flag: Started by changes from ",
            ", ".join(authors),
            f" ({len(files)} {'file' if len(files) == 1 else 'files'} changed):  \n",
        ]
        for index, affected in enumerate(files):
            if index >= MAX_LISTED_FILES:
                lines.append("*...file list truncated for display.*")
                break
            strike = "~~" if affected.edit_type is EditType.DELETE else ""
            lines.append(f"{strike}``{affected.path}``{strike}  \n")

        if self.settings.include_custom_message:
            lines.append("\n" + expand(self.settings.custom_message, self.build.environment))
        return "".join(lines)

    def commit_list(self, build: Build) -> str:
        entries = list(build.change_set)
        if not entries:
            logger.info("Empty change...")
            cause = build.upstream_cause
            if cause is None:
                return "No Changes."
            upstream = None
            if self.upstream_resolver is not None:
                upstream = self.upstream_resolver(cause.project, cause.build)
            if upstream is None:
                return "No upstream project."
            return self.commit_list(upstream)

        choice = self.settings.commit_info_choice
        commits = []
        for entry in entries:
            commit = ""
            if choice.show_title:
                commit += entry.msg
            if choice.show_author:
                commit += f" [{entry.author}]"
            commits.append(commit)
        return "- " + "\n- ".join(dict.fromkeys(commits))

    @staticmethod
    def escape(text: str) -> str:
        text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        text = text.replace("#", "\\#")
        return json.dumps(text)

    def _field(self, title: str, value: str, short: bool) -> None:
        self.fields.append({"short": short, "title": title, "value": value})

    def __str__(self) -> str:
        return json.dumps(self.attachment)


def _unique_files(entries: List[ChangeEntry]) -> List[AffectedFile]:
    seen: Dict[str, AffectedFile] = {}
    for entry in entries:
        for affected in entry.affected_files:
            seen.setdefault(affected.path, affected)
    return list(seen.values())
