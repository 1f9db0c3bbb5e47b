"""Expansion of ``$VAR`` and ``${VAR}`` references against a build environment."""
from __future__ import annotations

import re
from typing import Mapping

_VAR_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_.]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def expand(text: str, env: Mapping[str, str]) -> str:
    """Substitute known variables; unknown references are left untouched."""
    if not text:
        return ""

    def _sub(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        if name in env:
            return str(env[name])
        return match.group(0)

    return _VAR_RE.sub(_sub, text)
