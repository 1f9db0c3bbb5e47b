import pytest

from jenkins_mattermost.core.model import Build
from jenkins_mattermost.utils.timespan import (
    ONE_DAY_MS,
    ONE_HOUR_MS,
    ONE_MINUTE_MS,
    ONE_YEAR_MS,
    time_span_string,
)


@pytest.mark.parametrize(
    "millis, expected",
    [
        (42, "42 ms"),
        (230, "0.23 sec"),
        (1500, "1.5 sec"),
        (2000, "2 sec"),
        (45_000, "45 sec"),
        (ONE_MINUTE_MS + 5_000, "1 min 5 sec"),
        (12 * ONE_MINUTE_MS + 5_000, "12 min"),
        (3 * ONE_HOUR_MS + 20 * ONE_MINUTE_MS, "3 hr 20 min"),
        (ONE_DAY_MS + 2 * ONE_HOUR_MS, "1 day 2 hr"),
        (3 * ONE_DAY_MS, "3 days 0 hr"),
        (2 * ONE_YEAR_MS, "2 yr 0 mo"),
    ],
)
def test_time_span_string(millis, expected):
    assert time_span_string(millis) == expected


def test_running_build_duration_counts_from_start():
    build = Build(number=1, building=True, timestamp=10_000)
    assert build.duration_string(now_ms=10_000 + 90_000) == "1 min 30 sec and counting"
