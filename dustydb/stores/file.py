"""
Directory-backed store: one file per record.

Layout::

    <root>/<quoted namespace>/<quoted key>.rec

Names are percent-encoded so any namespace or key maps to a single path
component and can be recovered from it during scans. Writes go to a temporary
file in the same directory and are moved into place with ``os.replace`` so a
reader never observes a half-written record.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterator, Optional
from urllib.parse import quote, unquote

from dustydb.errors import PersistenceError
from dustydb.stores.abstract import AbstractStore, StoredItem
from dustydb.utils.logging import get_logger

log = get_logger(__name__)

_SUFFIX = ".rec"


def _component(name: str) -> str:
    encoded = quote(name, safe="")
    if encoded in ("", ".", ".."):
        raise ValueError(f"Invalid store name: {name!r}")
    return encoded


class FileStore(AbstractStore):
    """
    Persist records as individual files below ``root``.

    Parameters
    ----------
    root : str | Path
        Directory holding one sub-directory per namespace. Created on first write.
    fsync : bool
        Whether to fsync each record file before it replaces the previous one.
    """

    name: str = "file"

    def __init__(self, root: str | Path, fsync: bool = False) -> None:
        self.root = Path(root)
        self.fsync = fsync
        if self.root.exists() and not self.root.is_dir():
            raise PersistenceError(f"Store path {self.root} exists and is not a directory")

    def _namespace_dir(self, namespace: str) -> Path:
        return self.root / _component(namespace)

    def _record_path(self, namespace: str, key: str) -> Path:
        return self._namespace_dir(namespace) / f"{_component(key)}{_SUFFIX}"

    def get(self, namespace: str, key: str) -> Optional[bytes]:
        path = self._record_path(namespace, key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Failed to read {path}: {exc}") from exc

    def put(self, namespace: str, key: str, value: bytes) -> None:
        path = self._record_path(namespace, key)
        tmp_name: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=".tmp-", suffix=_SUFFIX, delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(value)
                tmp.flush()
                if self.fsync:
                    os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            log.warning(
                "File store write failed",
                extra={"namespace": namespace, "path": str(path), "error": str(exc)},
            )
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc

    def delete(self, namespace: str, key: str) -> bool:
        path = self._record_path(namespace, key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise PersistenceError(f"Failed to delete {path}: {exc}") from exc
        return True

    def scan(self, namespace: str) -> Iterator[StoredItem]:
        directory = self._namespace_dir(namespace)
        try:
            keys = sorted(
                unquote(entry.name[: -len(_SUFFIX)])
                for entry in os.scandir(directory)
                if entry.is_file()
                and entry.name.endswith(_SUFFIX)
                and not entry.name.startswith(".tmp-")
            )
        except FileNotFoundError:
            return
        except OSError as exc:
            raise PersistenceError(f"Failed to list {directory}: {exc}") from exc

        for key in keys:
            # A record removed since the listing was taken is skipped.
            value = self.get(namespace, key)
            if value is not None:
                yield key, value


__all__ = ["FileStore"]
