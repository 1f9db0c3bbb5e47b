"""jenkins-mattermost - relay Jenkins build status to Mattermost webhooks."""

from .core.config import RelayConfig, load_config
from .core.model import Build, Project, Result
from .core.notify import ActiveNotifier, MattermostSendStep, MattermostService
from .core.settings import CommitInfoChoice, NotifierSettings

__version__ = "1.0.0"
__all__ = [
    "ActiveNotifier",
    "Build",
    "CommitInfoChoice",
    "MattermostSendStep",
    "MattermostService",
    "NotifierSettings",
    "Project",
    "RelayConfig",
    "Result",
    "load_config",
]
