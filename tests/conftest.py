"""Test configuration and fixtures."""
from typing import Any, Dict, List, Optional

import pytest
import yaml

from jenkins_mattermost.core.config import RelayConfig
from jenkins_mattermost.core.model import (
    AffectedFile,
    Build,
    ChangeEntry,
    EditType,
    Project,
    Result,
)
from jenkins_mattermost.core.settings import NotifierSettings


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "ok", json_data: Any = None):
        self.status_code = status_code
        self.text = text
        self._json = json_data

    def json(self):
        if self._json is None:
            raise ValueError("No JSON")
        return self._json


class FakeSession:
    """Records requests and answers with queued responses (or exceptions)."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.posts: List[Dict[str, Any]] = []
        self.gets: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}
        self.auth = None
        self.closed = False

    def close(self):
        self.closed = True

    def _next(self):
        response = self.responses.pop(0) if self.responses else FakeResponse()
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):
        self.posts.append({"url": url, **kwargs})
        return self._next()

    def get(self, url, **kwargs):
        self.gets.append({"url": url, **kwargs})
        return self._next()


class FakeService:
    """Stands in for MattermostService and keeps what would have been posted."""

    def __init__(self, result: bool = True):
        self.result = result
        self.published: List[Dict[str, Any]] = []
        self.closed = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed += 1

    def publish(self, message, color="warning"):
        self.published.append({"message": message, "color": color})
        return self.result

    def publish_payload(self, payload, color="warning"):
        self.published.append({"payload": payload, "color": color})
        return self.result


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_response():
    return FakeResponse


@pytest.fixture
def fake_service():
    return FakeService()


@pytest.fixture
def make_build():
    def _make(
        number: int,
        result: Optional[str] = "SUCCESS",
        building: bool = False,
        timestamp: int = 0,
        duration: int = 0,
        **kwargs,
    ) -> Build:
        return Build(
            number=number,
            url=f"job/app/{number}/",
            result=Result.parse(result),
            building=building,
            timestamp=timestamp,
            duration=duration,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_project():
    def _make(*builds: Build, name: str = "app") -> Project:
        return Project(name=name, full_display_name=name, url=f"job/{name}/", builds=list(builds))

    return _make


@pytest.fixture
def history(make_build, make_project):
    """Build a project from oldest-to-newest result names; returns (project, newest build)."""

    def _history(*results: Optional[str]):
        builds = [make_build(i + 1, r, timestamp=(i + 1) * 60_000, duration=30_000) for i, r in enumerate(results)]
        project = make_project(*builds)
        return project, project.last_build()

    return _history


@pytest.fixture
def sample_changes():
    return [
        ChangeEntry(
            msg="Fix login redirect",
            author="alice",
            commit_id="abc123",
            affected_files=[
                AffectedFile("src/login.py", EditType.EDIT),
                AffectedFile("src/old.py", EditType.DELETE),
            ],
        ),
        ChangeEntry(
            msg="Add tests",
            author="bob",
            commit_id="def456",
            affected_files=[AffectedFile("tests/test_login.py", EditType.ADD)],
        ),
    ]


@pytest.fixture
def settings():
    return NotifierSettings(
        endpoint="http://mattermost.example.com/hooks/test",
        room="builds",
        build_server_url="http://jenkins.example.com",
    )


@pytest.fixture
def mock_notify_yaml(tmp_path):
    """Create a notify.yaml for testing."""
    config = {
        "mattermost": {
            "webhook_url": "http://mock.example.com/hooks/test",
            "room": "builds, bot@ops",
            "icon": "http://mock.example.com/icon.png",
        },
        "jenkins": {"url": "http://jenkins.example.com/", "user": "ci", "token": "secret"},
        "notify": {"success": True, "commit_info": "authors", "test_summary": True},
        "proxy": {"host": "proxy.example.com", "port": 8080, "no_proxy": ["*.example.com"]},
        "jobs": {
            "release/app": {
                "mattermost": {"room": "releases"},
                "notify": {"success": False, "aborted": True},
            }
        },
    }
    config_file = tmp_path / "configs" / "notify.yaml"
    config_file.parent.mkdir(parents=True)
    config_file.write_text(yaml.safe_dump(config))
    return config_file


@pytest.fixture
def relay_config(mock_notify_yaml):
    return RelayConfig.from_file(mock_notify_yaml)
