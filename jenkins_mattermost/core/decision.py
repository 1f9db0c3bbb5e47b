"""Status transition rules: when to notify and how to describe a build.

Aborted builds are transparent to every rule here: when looking back for the
"previous" result the walk skips them, so FAILURE, ABORTED, SUCCESS reads as
a recovery rather than ABORTED, SUCCESS.
"""
from __future__ import annotations

import logging
from typing import Optional

from .model import Build, Project, Result
from .settings import NotifierSettings
from ..utils.timespan import time_span_string

logger = logging.getLogger(__name__)

STARTING_STATUS_MESSAGE = ":pray: Starting..."
BACK_TO_NORMAL_STATUS_MESSAGE = ":white_check_mark: Back to normal"
STILL_FAILING_STATUS_MESSAGE = ":no_entry_sign: Still Failing"
SUCCESS_STATUS_MESSAGE = ":white_check_mark: Success"
FAILURE_STATUS_MESSAGE = ":no_entry_sign: Failure"
ABORTED_STATUS_MESSAGE = ":warning: Aborted"
NOT_BUILT_STATUS_MESSAGE = ":warning: Not built"
UNSTABLE_STATUS_MESSAGE = ":warning: Unstable"
UNKNOWN_STATUS_MESSAGE = ":question: Unknown"

_RESULT_MESSAGES = {
    Result.SUCCESS: SUCCESS_STATUS_MESSAGE,
    Result.FAILURE: FAILURE_STATUS_MESSAGE,
    Result.ABORTED: ABORTED_STATUS_MESSAGE,
    Result.NOT_BUILT: NOT_BUILT_STATUS_MESSAGE,
    Result.UNSTABLE: UNSTABLE_STATUS_MESSAGE,
}


def build_color(result: Optional[Result]) -> str:
    if result is Result.SUCCESS:
        return "good"
    if result is Result.FAILURE:
        return "danger"
    return "warning"


def start_color(project: Project, build: Build) -> str:
    """Colour for a start message: whatever the last finished build looked like."""
    previous = project.previous_completed_build(build)
    if previous is None:
        return "good"
    return build_color(previous.result)


def previous_non_aborted_result(project: Project, build: Build, completed_only: bool = True) -> Result:
    step = project.previous_completed_build if completed_only else project.previous_build
    previous = step(build)
    while previous is not None and previous.result is Result.ABORTED:
        previous = step(previous)
    # With no usable history behave as if the last build succeeded
    if previous is None or previous.result is None:
        return Result.SUCCESS
    return previous.result


def should_publish(project: Project, build: Build, settings: NotifierSettings) -> bool:
    """Decide whether a completed build is worth a message."""
    result = build.result
    previous = previous_non_aborted_result(project, build, completed_only=True)

    if result is Result.ABORTED and settings.notify_aborted:
        return True
    if result is Result.FAILURE and previous is not Result.FAILURE and settings.notify_failure:
        return True
    if result is Result.FAILURE and previous is Result.FAILURE and settings.notify_repeated_failure:
        return True
    if result is Result.NOT_BUILT and settings.notify_not_built:
        return True
    if (
        result is Result.SUCCESS
        and previous in (Result.FAILURE, Result.UNSTABLE)
        and settings.notify_back_to_normal
    ):
        return True
    if result is Result.SUCCESS and settings.notify_success:
        return True
    if result is Result.UNSTABLE and settings.notify_unstable:
        return True
    logger.debug(
        "Skipping %s %s: result=%s previous=%s",
        project.full_display_name, build.display_name, result, previous,
    )
    return False


def status_message(project: Project, build: Build) -> str:
    if build.building:
        return STARTING_STATUS_MESSAGE
    result = build.result
    previous = previous_non_aborted_result(project, build, completed_only=False)
    has_succeeded_before = project.previous_successful_build(build) is not None

    # Back to normal needs a success somewhere in history, not just a fresh job
    if (
        result is Result.SUCCESS
        and previous in (Result.FAILURE, Result.UNSTABLE)
        and has_succeeded_before
    ):
        return BACK_TO_NORMAL_STATUS_MESSAGE
    if result is Result.FAILURE and previous is Result.FAILURE:
        return STILL_FAILING_STATUS_MESSAGE
    return _RESULT_MESSAGES.get(result, UNKNOWN_STATUS_MESSAGE)


def back_to_normal_duration(project: Project, build: Build) -> str:
    """Time between the end of the last success and the end of this build."""
    previous_success = project.previous_successful_build(build)
    if previous_success is None:
        return "unknown"
    return time_span_string(build.end_time - previous_success.end_time)
