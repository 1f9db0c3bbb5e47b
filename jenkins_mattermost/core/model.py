"""Snapshot of the Jenkins build graph the notifier reasons about."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..utils.timespan import time_span_string


class Result(Enum):
    """Outcome of a finished build."""

    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    NOT_BUILT = "NOT_BUILT"
    ABORTED = "ABORTED"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Result"]:
        """Parse a Jenkins result name; running builds and unknown names give None."""
        if not value:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class EditType(Enum):
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: Optional[str]) -> "EditType":
        try:
            return cls(str(value or "edit").strip().lower())
        except ValueError:
            return cls.EDIT


@dataclass(frozen=True)
class AffectedFile:
    path: str
    edit_type: EditType = EditType.EDIT


@dataclass
class ChangeEntry:
    """A single commit in a build's change set."""

    msg: str
    author: str
    commit_id: str = ""
    affected_files: List[AffectedFile] = field(default_factory=list)


@dataclass(frozen=True)
class TestSummary:
    total: int
    failed: int = 0
    skipped: int = 0

    # Not a test class despite the name
    __test__ = False

    @property
    def passed(self) -> int:
        return self.total - self.failed - self.skipped


@dataclass(frozen=True)
class UpstreamCause:
    """Build was triggered by ``project`` build ``build``."""

    project: str
    build: int


@dataclass
class Build:
    """One run of a job as seen through the Jenkins API."""

    number: int
    display_name: str = ""
    url: str = ""
    result: Optional[Result] = None
    building: bool = False
    timestamp: int = 0
    duration: int = 0
    change_set: List[ChangeEntry] = field(default_factory=list)
    change_set_computed: bool = True
    test_summary: Optional[TestSummary] = None
    upstream_cause: Optional[UpstreamCause] = None
    environment: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = f"#{self.number}"

    @property
    def end_time(self) -> int:
        return self.timestamp + self.duration

    def duration_string(self, now_ms: Optional[int] = None) -> str:
        if self.building:
            now_ms = int(time.time() * 1000) if now_ms is None else now_ms
            return f"{time_span_string(now_ms - self.timestamp)} and counting"
        return time_span_string(self.duration)


@dataclass
class Project:
    """A job and its recent build history, newest build first."""

    name: str
    full_display_name: str = ""
    url: str = ""
    builds: List[Build] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.full_display_name:
            self.full_display_name = self.name
        self.builds.sort(key=lambda b: b.number, reverse=True)

    def last_build(self) -> Optional[Build]:
        return self.builds[0] if self.builds else None

    def build_by_number(self, number: int) -> Optional[Build]:
        for build in self.builds:
            if build.number == number:
                return build
        return None

    def _older_than(self, build: Build):
        for candidate in self.builds:
            if candidate.number < build.number:
                yield candidate

    def previous_build(self, build: Build) -> Optional[Build]:
        return next(self._older_than(build), None)

    def previous_completed_build(self, build: Build) -> Optional[Build]:
        for candidate in self._older_than(build):
            if not candidate.building:
                return candidate
        return None

    def previous_successful_build(self, build: Build) -> Optional[Build]:
        for candidate in self._older_than(build):
            if candidate.result is Result.SUCCESS:
                return candidate
        return None
