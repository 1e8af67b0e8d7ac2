"""The messages.json interchange format shared by base catalogs, snapshots and exports."""
import json
from typing import Any, Dict

import jsonschema

# id -> {message, description?, placeholders?}. messageTranslated only appears
# on seeded base entries, never in files.
CATALOG_SCHEMA = {
    "type": "object",
    "additionalProperties": {
        "type": "object",
        "properties": {
            "message": {"type": "string"},
            "description": {"type": "string"},
            "placeholders": {
                "type": "object",
                "additionalProperties": {
                    "type": "object",
                    "properties": {
                        "content": {"type": "string"},
                        "example": {"type": "string"}
                    }
                }
            }
        },
        "required": ["message"]
    }
}


def validate_catalog(data: Any) -> Dict[str, Dict[str, Any]]:
    """
    Check that data is a catalog mapping.

    Args:
        data: Decoded JSON.

    Returns:
        The same object, typed as a catalog.

    Raises:
        jsonschema.ValidationError: If data does not match CATALOG_SCHEMA.
    """
    jsonschema.validate(instance=data, schema=CATALOG_SCHEMA)
    return data


def parse_catalog(text: str) -> Dict[str, Dict[str, Any]]:
    """
    Decode and validate catalog JSON text.

    Raises:
        json.JSONDecodeError: If text is not JSON.
        jsonschema.ValidationError: If the JSON is not a catalog.
    """
    return validate_catalog(json.loads(text))
