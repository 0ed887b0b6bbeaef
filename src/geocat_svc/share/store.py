"""In-memory storage for share documents handed out as short tokens."""

from __future__ import annotations

import logging
import secrets
from collections import OrderedDict
from typing import Any


logger = logging.getLogger(__name__)


class ShareStore:
    """
    Bounded token -> share document store.

    Backs the ``POST /share`` and ``GET /share/{token}`` endpoints. When
    full, the oldest document is evicted.
    """

    def __init__(self, max_size: int = 10000):
        self.max_size = max_size
        self._documents: OrderedDict[str, dict[str, Any]] = OrderedDict()

    def put(self, document: dict[str, Any]) -> str:
        token = secrets.token_urlsafe(9)
        while token in self._documents:
            token = secrets.token_urlsafe(9)
        self._documents[token] = document
        while len(self._documents) > self.max_size:
            evicted, _ = self._documents.popitem(last=False)
            logger.debug("Evicted share document %s", evicted)
        return token

    def get(self, token: str) -> dict[str, Any] | None:
        return self._documents.get(token)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, token: object) -> bool:
        return token in self._documents
