"""HTTP proxy settings and no-proxy host matching for webhook delivery."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern
from urllib.parse import quote, urlparse

logger = logging.getLogger(__name__)

_NO_PROXY_SPLIT = re.compile(r"[ \t\n,|]+")


def no_proxy_patterns(value: str | List[str] | None) -> List[Pattern[str]]:
    """Turn ``*.example.com``-style host globs into compiled patterns."""
    if not value:
        return []
    if isinstance(value, str):
        items = _NO_PROXY_SPLIT.split(value)
    else:
        items = [str(item) for item in value]
    patterns = []
    for item in items:
        item = item.strip()
        if not item:
            continue
        patterns.append(re.compile(item.replace(".", r"\.").replace("*", ".*")))
    return patterns


@dataclass
class ProxyConfig:
    """Outbound proxy used for posting to Mattermost."""

    host: str
    port: int = 3128
    username: Optional[str] = None
    password: Optional[str] = None
    no_proxy: List[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any] | None) -> Optional["ProxyConfig"]:
        if not data or not data.get("host"):
            return None
        no_proxy = data.get("no_proxy") or []
        if isinstance(no_proxy, str):
            no_proxy = [p for p in _NO_PROXY_SPLIT.split(no_proxy) if p]
        return cls(
            host=str(data["host"]),
            port=int(data.get("port") or 3128),
            username=data.get("username") or None,
            password=data.get("password") or None,
            no_proxy=list(no_proxy),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.username.strip())

    def is_proxy_required(self, endpoint: str) -> bool:
        """False only when the endpoint host matches a no-proxy pattern."""
        parsed = urlparse(endpoint or "")
        host = parsed.hostname
        if not parsed.scheme or not host:
            logger.warning(
                "A malformed URL [%s] is defined as endpoint, please check your settings", endpoint
            )
            return True
        for pattern in no_proxy_patterns(self.no_proxy):
            if pattern.fullmatch(host):
                return False
        return True

    def url(self) -> str:
        auth = ""
        if self.has_credentials:
            logger.info("Using proxy authentication (user=%s)", self.username)
            auth = f"{quote(self.username or '', safe='')}:{quote(self.password or '', safe='')}@"
        return f"http://{auth}{self.host}:{self.port}"

    def proxies_for(self, endpoint: str) -> Optional[Dict[str, str]]:
        """Mapping suitable for ``requests``' ``proxies=`` or None for a direct connection."""
        if not self.is_proxy_required(endpoint):
            return None
        url = self.url()
        return {"http": url, "https": url}
