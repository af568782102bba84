"""
Response-shape helpers for the requirement API and the graph store.

The requirement API answers with several envelope shapes, and the graph
store reports entity ids in several shapes. Each helper here tries the known
shapes in a fixed priority order and reports which one matched.
"""

from typing import Any, Dict, List, NamedTuple, Optional

# Checked in this order after a bare list
ENVELOPE_KEYS = ("requirements", "items", "data")


def normalize_records(payload: Any) -> List[Dict[str, Any]]:
    """
    Flatten a requirement API response into a list of records.

    Priority order:
        1. bare list
        2. ``requirements`` list
        3. ``items`` list
        4. ``data`` list
        5. bare object, taken as a single record
        6. anything else yields an empty list

    Non-object entries inside a list are dropped.

    Args:
        payload: Decoded JSON body

    Returns:
        List of record dictionaries
    """
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]

    if not isinstance(payload, dict):
        return []

    for key in ENVELOPE_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]

    if payload:
        return [payload]
    return []


def first_record(payload: Any) -> Optional[Dict[str, Any]]:
    """Return the first record of a response, or None when it holds none."""
    records = normalize_records(payload)
    return records[0] if records else None


class EntityIdMatch(NamedTuple):
    """Outcome of an entity id lookup: which shape matched, and the id."""

    shape: Optional[str]
    value: Optional[str]

    @property
    def matched(self) -> bool:
        return self.shape is not None


NO_MATCH = EntityIdMatch(None, None)


def _as_id(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict) and isinstance(value.get("id"), str) and value["id"]:
        return value["id"]
    return None


def extract_entity_id(item: Any) -> EntityIdMatch:
    """
    Read the entity id from an accepted/rejected item of a bulk response.

    Shapes, in order:
        ``entityId``            -> ``"abc"``
        ``entityId.id``         -> ``{"id": "abc"}``
        ``key.entityId``        -> either of the two above, nested under ``key``
        ``externalId`` / ``id`` -> plain string fallback

    Returns:
        EntityIdMatch; ``NO_MATCH`` when none of the shapes is present
    """
    if not isinstance(item, dict):
        return NO_MATCH

    entity_id = item.get("entityId")
    if isinstance(entity_id, str) and entity_id:
        return EntityIdMatch("entityId", entity_id)
    if isinstance(entity_id, dict) and _as_id(entity_id):
        return EntityIdMatch("entityId.id", _as_id(entity_id))

    key = item.get("key")
    if isinstance(key, dict):
        nested = _as_id(key.get("entityId"))
        if nested:
            return EntityIdMatch("key.entityId", nested)

    for field in ("externalId", "id"):
        if isinstance(item.get(field), str) and item[field]:
            return EntityIdMatch(field, item[field])

    return NO_MATCH
