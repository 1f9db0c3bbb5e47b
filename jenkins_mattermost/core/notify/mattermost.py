"""Mattermost incoming-webhook client with multi-target fan-out.

A room string such as ``"builds, alice@ops"`` posts once per target.
Delivery is best effort: failures are logged and reported through the
boolean return value, never raised.
"""
from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests.exceptions import RequestException

from ..settings import NotifierSettings
from ...utils.proxy import ProxyConfig

logger = logging.getLogger(__name__)

DEFAULT_USER = "jenkins"
_TARGET_SPLIT = re.compile(r"[,; ]+")


def parse_targets(room: str) -> List[Tuple[str, str]]:
    """Split a room string into ``(username, channel)`` pairs.

    An empty channel means the webhook's own default channel.
    """
    targets = []
    for item in _TARGET_SPLIT.split((room or "").strip(" ,;")):
        if "@" in item:
            # anything after a second "@" is dropped
            user, channel = item.split("@")[:2]
            targets.append((user or DEFAULT_USER, channel))
        else:
            targets.append((DEFAULT_USER, item))
    return targets


class MattermostService:
    """Posts payloads to a Mattermost webhook for every configured target."""

    def __init__(
        self,
        endpoint: str,
        room: str = "",
        icon: str = "",
        proxy: Optional[ProxyConfig] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = endpoint
        self.targets = parse_targets(room)
        self.icon = icon
        self.proxy = proxy
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self) -> None:
        """Close the HTTP session if this service created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "MattermostService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @classmethod
    def from_settings(cls, settings: NotifierSettings) -> "MattermostService":
        return cls(
            endpoint=settings.endpoint,
            room=settings.room,
            icon=settings.icon,
            proxy=settings.proxy,
            timeout=settings.timeout,
        )

    def publish(self, message: str, color: str = "warning") -> bool:
        payload = {"attachments": [{"text": message}]}
        return self.publish_payload(payload, color)

    def publish_payload(self, payload: Dict[str, Any], color: str = "warning") -> bool:
        if not self.endpoint:
            logger.warning("Mattermost webhook URL is not configured; nothing posted")
            return False

        proxies = self.proxy.proxies_for(self.endpoint) if self.proxy else None
        result = True
        for user, channel in self.targets:
            body = copy.deepcopy(payload)
            if color:
                for attachment in body.get("attachments") or []:
                    attachment.setdefault("color", color)
            if channel:
                body["channel"] = channel
            body["username"] = user
            if self.icon:
                body["icon_url"] = self.icon

            encoded = json.dumps(body)
            logger.info("Posting: to %s@%s: %s (%s)", channel or "(default)", self.endpoint, encoded, color)
            try:
                response = self.session.post(
                    self.endpoint,
                    data={"payload": encoded},
                    proxies=proxies,
                    timeout=self.timeout,
                )
            except RequestException as exc:
                logger.warning("Error posting to Mattermost: %s", exc)
                result = False
                continue

            if response.status_code != 200:
                logger.warning("Mattermost post may have failed. Response: %s", response.text)
                result = False
            else:
                logger.info("Posting succeeded")
        return result
