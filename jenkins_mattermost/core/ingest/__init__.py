"""Sources of build state."""

from .jenkins_api import JenkinsClient, JenkinsError, parse_build, parse_project

__all__ = ["JenkinsClient", "JenkinsError", "parse_build", "parse_project"]
