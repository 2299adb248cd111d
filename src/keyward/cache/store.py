# Cache Module - Last-known-good key snapshots
#
# One JSON file per account: <cache_dir>/.<account>.json holding the key
# records exactly as last written. Overwritten whole after every successful
# fetch, read only when the authority is unavailable.
#
# Reads never fail: a missing, unreadable or corrupt file is an empty cache.

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Sequence, Union

from ..exceptions import CacheWriteError, KeyFormatError
from ..keys.models import Key, keys_from_json, keys_to_json

logger = logging.getLogger(__name__)

CACHE_FILE_MODE = 0o600


class CacheStore:
    """Per-account key cache under a single directory."""

    def __init__(self, cache_dir: Union[str, Path]):
        self.cache_dir = Path(cache_dir)

    def path_for(self, account: str) -> Path:
        if not account or "/" in account or "\0" in account:
            raise ValueError(f"account name not usable as a cache file name: {account!r}")
        return self.cache_dir / f".{account}.json"

    def write(self, account: str, keys: Sequence[Key]) -> Path:
        """Replace the account's cache file with ``keys``.

        The document is written to a temporary file in the same directory
        and renamed over the old one, so readers see either the old or the
        new snapshot.

        Raises:
            CacheWriteError: the directory is missing or not writable.
        """
        try:
            path = self.path_for(account)
        except ValueError as e:
            raise CacheWriteError(str(e)) from e
        body = keys_to_json(keys)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{account}.", suffix=".tmp", dir=self.cache_dir
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(body)
            os.chmod(tmp_name, CACHE_FILE_MODE)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CacheWriteError(f"Unable to write cache file ({path}): {e}") from e
        logger.debug("Cached %d keys for %s in %s", len(keys), account, path)
        return path

    def read(self, account: str) -> List[Key]:
        """Load the cached keys for ``account``; empty when there is nothing usable."""
        try:
            path = self.path_for(account)
        except ValueError as e:
            logger.warning("Not reading cache: %s", e)
            return []
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            logger.debug("No cache file for %s (%s)", account, path)
            return []
        except OSError as e:
            logger.warning("Unable to read cache file (%s): %s", path, e)
            return []

        try:
            return keys_from_json(data)
        except KeyFormatError as e:
            logger.warning("Ignoring corrupt cache file (%s): %s", path, e)
            return []
