import logging
import os
import re
import tempfile
from typing import Optional, Protocol

from src.errors import SnapshotStoreError

logger = logging.getLogger("messages_editor.snapshot_store")


class SnapshotStore(Protocol):
    """
    Key/value storage for serialized work snapshots.

    Implementations report storage failures as SnapshotStoreError. A Catalog
    logs any other exception from set() at ERROR with a traceback and keeps
    going, while the session lets it propagate.
    """

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class FileSnapshotStore:
    """
    Stores each key as a UTF-8 file inside a directory.

    Writes go through a temporary file in the same directory followed by
    os.replace, so a reader never sees a half-written snapshot.
    """

    def __init__(self, directory: str):
        self.directory = os.path.abspath(os.path.expanduser(directory))

    def path_for(self, key: str) -> str:
        """
        Map a key to its file path.

        Args:
            key: The snapshot key (e.g. "_work").

        Returns:
            The absolute path of the file backing the key.
        """
        safe_key = re.sub(r'[^A-Za-z0-9_.-]', '_', key)
        return os.path.join(self.directory, f"{safe_key}.json")

    async def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise SnapshotStoreError(f"Could not read snapshot '{path}': {e}") from e

    async def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        temp_path = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                    mode='w', delete=False, dir=self.directory, suffix='.tmp', encoding='utf-8') as temp_f:
                temp_path = temp_f.name
                temp_f.write(value)
            os.replace(temp_path, path)
            temp_path = None
            logger.debug("Stored snapshot '%s' (%d characters).", key, len(value))
        except OSError as e:
            raise SnapshotStoreError(f"Could not write snapshot '{path}': {e}") from e
        finally:
            if temp_path and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError as _e:
                    logger.warning("Could not delete temporary snapshot file '%s': %s", temp_path, _e)

    async def remove(self, key: str) -> None:
        path = self.path_for(key)
        try:
            os.remove(path)
            logger.info("Removed snapshot '%s'.", key)
        except FileNotFoundError:
            return
        except OSError as e:
            raise SnapshotStoreError(f"Could not remove snapshot '{path}': {e}") from e
