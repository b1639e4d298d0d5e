# genroute/state/file.py
"""
JSON-file key-value store.

One file per key inside a directory, so exhaustion state and cached
responses survive a process restart on a single machine without running
Redis. Keys are hashed into file names; the original key is kept inside
the file so a hash collision reads as a miss rather than a wrong value.

File I/O goes through aiofiles. Writes go to a temporary file first and
are renamed into place, so a crash mid-write leaves the previous value
intact.
"""

from __future__ import annotations

import hashlib
import json
import time
from pathlib import Path

import aiofiles
import aiofiles.os

from .base import AbstractKeyValueStore
from ..exceptions import StorageUnavailable


class FileStore(AbstractKeyValueStore):
    """
    Directory-backed key-value store.

    Parameters
    ----------
    directory:
        Where the files live. Created on first write.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._dir / f"{digest}.json"

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise StorageUnavailable(f"'{path}' is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise StorageUnavailable(f"cannot read '{path}': {exc}") from exc

        try:
            record = json.loads(raw)
        except json.JSONDecodeError:
            # Half-written or hand-edited file; let the caller decide.
            return raw

        if not isinstance(record, dict) or record.get("key") != key:
            return None
        expiry = record.get("expires_at")
        if expiry is not None and time.time() > expiry:
            await self.delete(key)
            return None
        return record.get("value")

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        path = self._path(key)
        record = {
            "key": key,
            "value": value,
            "expires_at": time.time() + ttl_seconds if ttl_seconds else None,
        }
        tmp = path.with_suffix(".tmp")
        try:
            await aiofiles.os.makedirs(self._dir, exist_ok=True)
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(json.dumps(record))
            await aiofiles.os.replace(tmp, path)
        except OSError as exc:
            raise StorageUnavailable(f"cannot write '{path}': {exc}") from exc

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise StorageUnavailable(f"cannot delete '{path}': {exc}") from exc
