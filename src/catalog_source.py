"""Producers for the base-language catalog."""
import asyncio
import json
import logging
import random
from typing import Any, Dict, Optional

import httpx
import jsonschema

from src.catalog_format import parse_catalog, validate_catalog
from src.errors import CatalogLoadError

logger = logging.getLogger("messages_editor.catalog_source")

DEFAULT_CATALOG_URL = (
    "https://raw.githubusercontent.com/downthemall/downthemall/master/_locales/{locale}/messages.json"
)


def catalog_url(url_template: str, locale: str) -> str:
    return url_template.format(locale=locale)


async def _handle_retry(attempt: int, max_retries: int, base_delay: float, url: str) -> bool:
    """
    Sleep before the next attempt.

    Returns:
        True if another attempt should be made, False once retries are exhausted.
    """
    if attempt >= max_retries:
        logger.error("Fetching '%s' failed after %d attempts.", url, max_retries)
        return False
    delay = base_delay * (2 ** (attempt - 1)) + random.uniform(0, 1)
    logger.info("Retrying '%s' in %.2f seconds (Attempt %d/%d)", url, delay, attempt, max_retries)
    await asyncio.sleep(delay)
    return True


async def fetch_remote_catalog(
        url: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None
) -> Dict[str, Dict[str, Any]]:
    """
    Download a messages.json catalog, bypassing HTTP caches.

    Transport errors and 5xx responses are retried with exponential backoff.
    Client errors (4xx) and malformed payloads fail immediately.

    Args:
        url: The catalog URL.
        timeout: Per-request timeout in seconds.
        max_retries: Total number of attempts.
        base_delay: Initial backoff delay in seconds.
        client: An existing client to reuse (tests pass one with a mock transport).

    Returns:
        The catalog mapping.

    Raises:
        CatalogLoadError: If no valid catalog could be obtained.
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await client.get(url, headers={"Cache-Control": "no-cache"})
                response.raise_for_status()
                catalog = validate_catalog(response.json())
                logger.info("Fetched %d messages from '%s'.", len(catalog), url)
                return catalog
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.warning("Fetching '%s' returned HTTP %d.", url, status)
                if status < 500 or not await _handle_retry(attempt, max_retries, base_delay, url):
                    raise CatalogLoadError(f"Could not fetch catalog from '{url}': HTTP {status}") from e
            except httpx.TransportError as e:
                logger.warning("Fetching '%s' failed: %s", url, e)
                if not await _handle_retry(attempt, max_retries, base_delay, url):
                    raise CatalogLoadError(f"Could not fetch catalog from '{url}': {e}") from e
            except json.JSONDecodeError as e:
                raise CatalogLoadError(f"Catalog at '{url}' is not valid JSON: {e}") from e
            except jsonschema.ValidationError as e:
                raise CatalogLoadError(f"Catalog at '{url}' has an unexpected structure: {e.message}") from e
    finally:
        if owns_client:
            await client.aclose()


def load_catalog_file(path: str) -> Dict[str, Dict[str, Any]]:
    """
    Read a messages.json catalog from disk.

    Raises:
        CatalogLoadError: If the file cannot be read or is not a catalog.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            catalog = parse_catalog(f.read())
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogLoadError(f"Could not read catalog file '{path}': {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogLoadError(f"Catalog file '{path}' is not valid JSON: {e}") from e
    except jsonschema.ValidationError as e:
        raise CatalogLoadError(f"Catalog file '{path}' has an unexpected structure: {e.message}") from e
    logger.info("Loaded %d messages from '%s'.", len(catalog), path)
    return catalog
