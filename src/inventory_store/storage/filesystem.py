"""
Directory-backed key/value storage.

Lets several processes share one inventory the way browser tabs share
local storage: one file per key, written atomically.
"""

import errno
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import StorageFullError, StorageUnavailableError
from .kv import KeyValueStore


TEMP_PREFIX = '.tmp_'

_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, 'EDQUOT', errno.ENOSPC)}


def _storage_error(operation: str, key: Optional[str], e: OSError):
    if e.errno in _FULL_ERRNOS:
        return StorageFullError(operation, key, e)
    return StorageUnavailableError(operation, key, e)


class FileKeyValueStore(KeyValueStore):
    """
    Key/value store keeping each key in its own file.

    Layout:
        root/
            <key>        # value as UTF-8 text
    """

    def __init__(self, root: str | Path, context_id: Optional[str] = None):
        """Initialize store at given root directory (created on demand)."""
        super().__init__(context_id)
        self.root = Path(root).resolve()

    def initialize(self) -> None:
        """
        Create the storage directory.

        Idempotent - safe to call multiple times.
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise _storage_error('initialize', None, e) from e

    def get_path(self, key: str) -> Path:
        """
        Get filesystem path for a key.

        Raises ValueError for keys that could escape the root directory.
        """
        if not key or '/' in key or '\\' in key or key.startswith('.') or '\x00' in key:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / key

    def _read(self, key: str) -> Optional[str]:
        path = self.get_path(key)
        try:
            # Undecodable bytes surface later as a malformed snapshot.
            return path.read_text(encoding='utf-8', errors='replace')
        except FileNotFoundError:
            return None
        except OSError as e:
            raise _storage_error('read', key, e) from e

    def _write(self, key: str, value: str) -> None:
        path = self.get_path(key)
        self.initialize()
        self._write_atomic(path, key, value.encode('utf-8'))

    def _list_keys(self) -> list:
        if not self.root.exists():
            return []
        try:
            return sorted(
                p.name for p in self.root.iterdir()
                if p.is_file() and not p.name.startswith('.')
            )
        except OSError as e:
            raise _storage_error('list_keys', None, e) from e

    def _write_atomic(self, path: Path, key: str, data: bytes) -> None:
        """
        Write a value file atomically.

        Uses temp file + rename so readers never see a partial value.
        """
        fd = None
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(dir=str(path.parent), prefix=TEMP_PREFIX)

            os.write(fd, data)
            os.close(fd)
            fd = None

            os.replace(temp_path, path)
            temp_path = None

        except OSError as e:
            raise _storage_error('write', key, e) from e

        finally:
            if fd is not None:
                try:
                    os.close(fd)
                except OSError:
                    pass
            if temp_path is not None and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass

    def __repr__(self) -> str:
        return f"FileKeyValueStore(root={self.root}, context_id={self.context_id!r})"
