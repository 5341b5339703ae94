"""Allocation of storage partitions backed by on-disk directories."""

from __future__ import annotations

import os
import re
import struct
from datetime import datetime
from pathlib import Path

_SIZE = struct.Struct("<Q")
_PART_COUNT = 100
_PART_SIZE = 1024 * 1024
_INT_PREFIX = re.compile(r"[ \t\n\v\f\r]*[+-]?\d+")


class StorageAllocationError(RuntimeError):
    """Raised when a storage part cannot be allocated, released or persisted."""


def _encode_entries(entries: list[str]) -> bytes:
    chunks = [_SIZE.pack(len(entries))]
    for entry in entries:
        data = entry.encode("utf-8", "surrogateescape")
        chunks.append(_SIZE.pack(len(data)))
        chunks.append(data)
    return b"".join(chunks)


def _decode_entries(blob: bytes) -> list[str]:
    def take(offset: int, size: int) -> bytes:
        chunk = blob[offset : offset + size]
        if len(chunk) != size:
            raise StorageAllocationError("Backup file is truncated.")
        return chunk

    (count,) = _SIZE.unpack(take(0, _SIZE.size))
    offset = _SIZE.size
    entries = []
    for _ in range(count):
        (length,) = _SIZE.unpack(take(offset, _SIZE.size))
        offset += _SIZE.size
        entries.append(take(offset, length).decode("utf-8", "surrogateescape"))
        offset += length
    return entries


class StorageManager:
    """A pool of storage parts ``part0`` to ``part99``.

    Each part is a directory under ``storage_dir`` holding a 1 MiB
    ``data.bin``. Allocations are saved into the ``backups`` directory on
    close and restored on creation.
    """

    def __init__(self, pool: str, storage_dir: str | os.PathLike = "./storage_data") -> None:
        self.pool = pool
        self.storage_dir = Path(storage_dir)
        self._allocated: set[str] = set()
        self._available: set[str] = set()
        self._closed = False

        self._log(f"Initializing StorageManager for pool: {pool}")
        try:
            self.storage_dir.mkdir(mode=0o755, exist_ok=True)
        except OSError as exc:
            self._log(f"Failed to create storage directory: {self.storage_dir}")
            raise StorageAllocationError("Failed to create storage directory.") from exc
        try:
            self.backup_dir.mkdir(mode=0o755, exist_ok=True)
        except OSError as exc:
            self._log(f"Failed to create backup directory: {self.backup_dir}")
            raise StorageAllocationError("Failed to create backup directory.") from exc

        self._log(f"Storage directory ready: {self.storage_dir}")
        self._initialize_available_parts()
        self.restore_backup()

    @property
    def backup_dir(self) -> Path:
        return self.storage_dir / "backups"

    @property
    def backup_path(self) -> Path:
        return self.backup_dir / "backup.dat"

    def _log(self, message: str) -> None:
        now = datetime.now()
        stamp = f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"
        print(f"[STORAGE_MANAGER][{self.pool}][{stamp}] {message}", flush=True)

    def _initialize_available_parts(self) -> None:
        self._log(f"Initializing available storage parts for pool: {self.pool}")
        self._available.clear()

        for index in range(_PART_COUNT):
            name = f"part{index}"
            part_dir = self.storage_dir / name
            try:
                part_dir.mkdir(mode=0o755, exist_ok=True)
            except OSError:
                self._log(f"Failed to create directory for part: {name}")
                continue
            try:
                with open(part_dir / "data.bin", "wb") as handle:
                    try:
                        handle.truncate(_PART_SIZE)
                    except OSError:
                        self._log(f"Failed to allocate space for part: {name}")
                        continue
            except OSError:
                self._log(f"Failed to create data file for part: {name}")
                continue
            self._available.add(name)

        self._log(f"Initialized {len(self._available)} available parts")

    def _is_in_pool(self, part_name: str) -> bool:
        return (self.storage_dir / part_name).is_dir()

    @staticmethod
    def _is_valid_part(part_name: str) -> bool:
        if len(part_name) < 5 or not part_name.startswith("part"):
            return False
        return _INT_PREFIX.match(part_name[4:]) is not None

    def allocate_part(self) -> str:
        """Allocate and return the lowest available part (in string order)."""
        if not self._available:
            self._log("No available storage parts in pool.")
            raise StorageAllocationError("No available storage parts in the pool.")
        part = min(self._available)
        self._available.remove(part)
        self._allocated.add(part)
        self._log(f"Allocated Storage Part: {part}(Remaining :{len(self._available)})")
        return part

    def deallocate_part(self, part_name: str) -> None:
        """Return an allocated part to the pool."""
        if part_name not in self._allocated:
            raise StorageAllocationError("Storage part is not currently allocated.")
        self._allocated.remove(part_name)
        self._available.add(part_name)

    def is_allocated(self, part_name: str) -> bool:
        return part_name in self._allocated

    def allocated_parts(self) -> list[str]:
        """Allocated parts, sorted as strings."""
        return sorted(self._allocated)

    def available_parts(self) -> list[str]:
        """Available parts, sorted as strings."""
        return sorted(self._available)

    def take_backup(self) -> None:
        """Write the allocated parts to the backup file atomically."""
        final_path = self.backup_path
        tmp_path = final_path.with_name(final_path.name + ".tmp")
        try:
            tmp_path.write_bytes(_encode_entries(self.allocated_parts()))
        except OSError as exc:
            raise StorageAllocationError("Failed to create backup.") from exc
        try:
            os.replace(tmp_path, final_path)
        except OSError as exc:
            raise StorageAllocationError("Failed to commit backup.") from exc

    def restore_backup(self) -> None:
        """Load allocated parts from the backup file, if there is one."""
        try:
            blob = self.backup_path.read_bytes()
        except OSError:
            return
        self._allocated.clear()
        for part in _decode_entries(blob):
            self._allocated.add(part)
            self._available.discard(part)

    def close(self) -> None:
        """Save a backup; further calls do nothing."""
        if self._closed:
            return
        self._closed = True
        self.take_backup()

    def __enter__(self) -> StorageManager:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()