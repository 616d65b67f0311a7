"""Persist the device-link credential bundle to a JSON file."""

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Optional

from pairline.errors import StorageError

logger = logging.getLogger(__name__)


class CredentialStore:
    """JSON file-based credential storage inside an auth directory."""

    FILENAME = "creds.json"

    def __init__(self, auth_dir: Path):
        """Initialize credential store.

        Args:
            auth_dir: Directory holding the credential file.
        """
        self.auth_dir = auth_dir
        self.path = auth_dir / self.FILENAME

    def exists(self) -> bool:
        return self.path.exists()

    async def load(self) -> Optional[dict[str, Any]]:
        """Load credentials, or None when there are none usable."""
        if not self.path.exists():
            logger.debug(f"No credentials at {self.path}")
            return None

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load credentials: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed credentials file")
            return None
        return data

    async def save(self, credentials: dict[str, Any]) -> None:
        """Write credentials and flush them to disk before returning.

        Raises:
            StorageError: If the file could not be written.
        """
        tmp_path = self.path.with_suffix(".tmp")
        try:
            self.auth_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(credentials, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save credentials: {e}") from e

        logger.debug("Saved link credentials")

    async def clear(self) -> None:
        """Delete all stored credentials and recreate an empty auth dir."""
        try:
            if self.auth_dir.exists():
                shutil.rmtree(self.auth_dir)
                logger.info(f"Deleted existing auth folder {self.auth_dir}")
            self.auth_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to clear credentials: {e}") from e
