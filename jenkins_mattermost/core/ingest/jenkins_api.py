"""Read job and build state from the Jenkins JSON REST API.

The parse_* functions are pure and also accept documents saved with
``curl $JENKINS_URL/job/<name>/api/json?tree=...``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote, unquote

import requests
from requests.exceptions import RequestException

from ..model import (
    AffectedFile,
    Build,
    ChangeEntry,
    EditType,
    Project,
    Result,
    TestSummary,
    UpstreamCause,
)

logger = logging.getLogger(__name__)

_CHANGE_TREE = "items[msg,commitId,author[fullName],paths[editType,file],affectedPaths]"
BUILD_TREE = (
    "number,displayName,url,result,building,timestamp,duration,"
    f"changeSet[{_CHANGE_TREE}],changeSets[{_CHANGE_TREE}],"
    "actions[causes[upstreamProject,upstreamBuild],failCount,skipCount,totalCount,"
    "parameters[name,value]]"
)
PROJECT_TREE = "name,fullName,fullDisplayName,url,builds[{build}]{{0,{depth}}}"


class JenkinsError(RuntimeError):
    """The Jenkins API could not be reached or answered with an error."""


def job_path(full_name: str) -> str:
    """``folder/app`` -> ``job/folder/job/app``."""
    parts = [p for p in full_name.strip("/").split("/") if p]
    return "/".join(f"job/{quote(p, safe='')}" for p in parts)


def job_name_from_url(url: str) -> str:
    """``job/folder/job/app/`` (or an absolute URL) -> ``folder/app``."""
    segments = [s for s in url.split("/") if s]
    names = []
    for index, segment in enumerate(segments[:-1]):
        if segment == "job":
            names.append(unquote(segments[index + 1]))
    return "/".join(names)


def _relative_url(url: str, base_url: str = "") -> str:
    if not url:
        return ""
    if base_url and url.startswith(base_url):
        return url[len(base_url):].lstrip("/")
    if "://" in url:
        index = url.find("/job/")
        if index >= 0:
            return url[index + 1:]
    return url.lstrip("/")


def _change_entries(data: Dict[str, Any]) -> tuple[List[ChangeEntry], bool]:
    change_sets: List[Dict[str, Any]] = []
    if isinstance(data.get("changeSet"), dict):
        change_sets.append(data["changeSet"])
    change_sets.extend(cs for cs in data.get("changeSets") or [] if isinstance(cs, dict))

    entries = []
    for change_set in change_sets:
        for item in change_set.get("items") or []:
            author = (item.get("author") or {}).get("fullName") or "unknown"
            files = [
                AffectedFile(path=p.get("file", ""), edit_type=EditType.parse(p.get("editType")))
                for p in item.get("paths") or []
            ]
            if not files:
                files = [AffectedFile(path=p) for p in item.get("affectedPaths") or []]
            entries.append(
                ChangeEntry(
                    msg=item.get("msg") or "",
                    author=author,
                    commit_id=item.get("commitId") or "",
                    affected_files=files,
                )
            )
    computed = "changeSet" in data or "changeSets" in data
    return entries, computed


def _actions(data: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    return (a for a in data.get("actions") or [] if isinstance(a, dict))


def _test_summary(data: Dict[str, Any]) -> Optional[TestSummary]:
    for action in _actions(data):
        if "totalCount" in action:
            return TestSummary(
                total=int(action.get("totalCount") or 0),
                failed=int(action.get("failCount") or 0),
                skipped=int(action.get("skipCount") or 0),
            )
    return None


def _upstream_cause(data: Dict[str, Any]) -> Optional[UpstreamCause]:
    for action in _actions(data):
        for cause in action.get("causes") or []:
            if cause.get("upstreamProject") and cause.get("upstreamBuild") is not None:
                return UpstreamCause(project=cause["upstreamProject"], build=int(cause["upstreamBuild"]))
    return None


def _parameters(data: Dict[str, Any]) -> Dict[str, str]:
    params = {}
    for action in _actions(data):
        for param in action.get("parameters") or []:
            if param.get("name") and param.get("value") is not None:
                params[str(param["name"])] = str(param["value"])
    return params


def parse_build(
    data: Dict[str, Any],
    job_name: str = "",
    jenkins_url: str = "",
    job_url: str = "",
) -> Build:
    number = int(data["number"])
    absolute_url = data.get("url") or ""
    entries, computed = _change_entries(data)

    environment = {
        "BUILD_NUMBER": str(number),
        "BUILD_DISPLAY_NAME": data.get("displayName") or f"#{number}",
        "BUILD_URL": absolute_url,
        "JOB_NAME": job_name,
        "JOB_URL": job_url,
        "JENKINS_URL": jenkins_url,
    }
    environment.update(_parameters(data))

    return Build(
        number=number,
        display_name=data.get("displayName") or f"#{number}",
        url=_relative_url(absolute_url, jenkins_url),
        result=Result.parse(data.get("result")),
        building=bool(data.get("building")),
        timestamp=int(data.get("timestamp") or 0),
        duration=int(data.get("duration") or 0),
        change_set=entries,
        change_set_computed=computed,
        test_summary=_test_summary(data),
        upstream_cause=_upstream_cause(data),
        environment=environment,
    )


def parse_project(data: Dict[str, Any], jenkins_url: str = "") -> Project:
    job_url = data.get("url") or ""
    full_name = data.get("fullName") or job_name_from_url(job_url) or data.get("name") or ""
    builds = [
        parse_build(b, job_name=full_name, jenkins_url=jenkins_url, job_url=job_url)
        for b in data.get("builds") or []
        if isinstance(b, dict) and "number" in b
    ]
    return Project(
        name=full_name,
        full_display_name=data.get("fullDisplayName") or full_name,
        url=_relative_url(job_url, jenkins_url),
        builds=builds,
    )


class JenkinsClient:
    """Thin ``requests`` wrapper over the parts of the API the notifier needs."""

    def __init__(
        self,
        base_url: str,
        user: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        if user and token:
            self.session.auth = (user, token)
        self.session.headers["User-Agent"] = "jenkins-mattermost/1.0"

    @classmethod
    def from_config(cls, config) -> "JenkinsClient":
        jenkins = config.section("jenkins")
        url = jenkins.get("url")
        if not url:
            raise KeyError("Missing configuration key: jenkins.url")
        return cls(
            base_url=str(url),
            user=jenkins.get("user"),
            token=jenkins.get("token"),
            timeout=float(jenkins.get("timeout", 10) or 10),
        )

    def _get_json(self, path: str, tree: str) -> Dict[str, Any]:
        url = f"{self.base_url}{path}/api/json"
        try:
            response = self.session.get(url, params={"tree": tree}, timeout=self.timeout)
        except RequestException as exc:
            raise JenkinsError(f"Jenkins request to {url} failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise JenkinsError(f"Jenkins returned status {response.status_code} for {url}")
        try:
            return response.json()
        except ValueError as exc:
            raise JenkinsError(f"Jenkins returned invalid JSON for {url}") from exc

    def get_project(self, full_name: str, depth: int = 20) -> Project:
        data = self._get_json(job_path(full_name), PROJECT_TREE.format(build=BUILD_TREE, depth=depth))
        data.setdefault("fullName", full_name)
        return parse_project(data, jenkins_url=self.base_url)

    def get_build(self, full_name: str, number: int) -> Build:
        data = self._get_json(f"{job_path(full_name)}/{int(number)}", BUILD_TREE)
        job_url = f"{self.base_url}{job_path(full_name)}/"
        return parse_build(data, job_name=full_name, jenkins_url=self.base_url, job_url=job_url)

    def resolve_upstream(self, project: str, number: int) -> Optional[Build]:
        try:
            return self.get_build(project, number)
        except JenkinsError as exc:
            logger.warning("Could not load upstream build %s #%s: %s", project, number, exc)
            return None
