"""Content-stable identity for picked entities."""

from __future__ import annotations

import hashlib
import json

from .types import Entity, JulianDate


def hash_entity(entity: Entity, clock: JulianDate) -> str:
    """
    Digest of an entity's visible attributes at the given clock time.

    Some providers regenerate entity ids on every reload, so a picked
    feature is recognised by what it shows instead. The clock time is part
    of the digest: time-dynamic properties are evaluated at that time, and
    the same feature picked at a different time hashes differently.
    """
    payload = {
        "name": entity.name,
        "description": entity.description,
        "properties": entity.properties_at(clock),
        "position": entity.position.to_dict() if entity.position is not None else None,
        "time": clock.to_dict(),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
