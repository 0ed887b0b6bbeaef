"""The versioned share document and its JSON form."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from ..errors import ShareFormatError

SHARE_VERSION = "0.0.05"

_VERSION = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?")


def parse_version(version: str) -> tuple[int, int, int]:
    """``"0.0.05"`` -> ``(0, 0, 5)``. Unparseable versions sort lowest."""
    match = _VERSION.match(version or "")
    if not match:
        return (0, 0, 0)
    major, minor, patch = match.groups()
    return (int(major), int(minor), int(patch or 0))


def is_share_data(data: Any) -> bool:
    """Whether a JSON value looks like a share document."""
    return isinstance(data, dict) and "version" in data and isinstance(data.get("initSources"), list)


@dataclass
class ShareDocument:
    """
    A snapshot of catalog and view state.

    ``init_sources`` holds init fragments, applied in order when the
    document is opened. A fragment is either a dict or a URL string naming
    an init file.
    """
    init_sources: list[dict[str, Any] | str] = field(default_factory=list)
    version: str = SHARE_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "initSources": self.init_sources}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Any) -> ShareDocument:
        if not isinstance(data, dict):
            raise ShareFormatError("A share document must be a JSON object.")
        version = data.get("version")
        if not isinstance(version, str):
            raise ShareFormatError("The share document has no version.")
        sources = data.get("initSources")
        if not isinstance(sources, list):
            raise ShareFormatError("The share document has no initSources list.")
        for source in sources:
            if not isinstance(source, (dict, str)):
                raise ShareFormatError(f"Unexpected init source: {source!r}")
        return cls(init_sources=list(sources), version=version)

    @classmethod
    def from_json(cls, text: str) -> ShareDocument:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ShareFormatError(f"The share document is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def fragments(self, key: str) -> list[Any]:
        """Values of every fragment carrying ``key``, in order."""
        return [s[key] for s in self.init_sources if isinstance(s, dict) and key in s]
