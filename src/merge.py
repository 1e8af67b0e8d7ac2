import copy
import json
import logging
from typing import Any, Dict, Mapping, Optional

import jsonschema

from src.catalog_format import parse_catalog

logger = logging.getLogger("messages_editor.merge")


def merge_work_into_base(
        base: Mapping[str, Mapping[str, Any]],
        work: Optional[Mapping[str, Mapping[str, Any]]]
) -> Dict[str, Dict[str, Any]]:
    """
    Seed a base catalog with translations from a work snapshot.

    The base catalog decides which ids exist: work entries for ids the base no
    longer has are dropped, as are work entries with an empty message.
    Neither argument is modified.

    Args:
        base: The freshly loaded base-language catalog.
        work: A previously saved snapshot, or None.

    Returns:
        A copy of base where matching entries carry "messageTranslated".
    """
    seeded = copy.deepcopy(dict(base))
    if not work:
        return seeded

    dropped = 0
    for entry_id, entry in work.items():
        message = entry.get('message') if isinstance(entry, Mapping) else None
        if entry_id not in seeded or not message:
            dropped += 1
            continue
        seeded[entry_id]['messageTranslated'] = message
    if dropped:
        logger.info("Ignored %d work entries without a counterpart in the base catalog.", dropped)
    return seeded


def parse_work_snapshot(serialized: Optional[str]) -> Optional[Dict[str, Dict[str, Any]]]:
    """
    Decode a stored work snapshot.

    Malformed snapshots are reported and treated as absent so a load can
    still proceed from the base catalog alone.

    Args:
        serialized: The stored snapshot text, or None.

    Returns:
        The snapshot mapping, or None if absent or malformed.
    """
    if not serialized:
        return None
    try:
        return parse_catalog(serialized)
    except json.JSONDecodeError as e:
        logger.error("Discarding work snapshot: invalid JSON: %s", e)
    except jsonschema.ValidationError as e:
        logger.error("Discarding work snapshot: unexpected structure: %s", e.message)
    return None
