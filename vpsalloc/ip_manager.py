"""Allocation of IPv4 addresses from a pool with on-disk snapshots."""

from __future__ import annotations

import ipaddress
import os
import re
import struct
from datetime import datetime
from pathlib import Path

_SIZE = struct.Struct("<Q")
_INT_PREFIX = re.compile(r"[ \t\n\v\f\r]*[+-]?\d+")
_INT_MIN, _INT_MAX = -(2**31), 2**31 - 1


class IPAllocationError(RuntimeError):
    """Raised when an address cannot be allocated, released or persisted."""


def _leading_int(text: str) -> int:
    """Parse the integer at the start of ``text``, ignoring what follows it."""
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"no integer in {text!r}")
    value = int(match.group())
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range: {value}")
    return value


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
            raise IPAllocationError("Snapshot file is truncated")
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


class IPManager:
    """A pool of IPv4 addresses in the last octet of a subnet.

    The subnet is written either as ``a.b.c.N`` (addresses 1 to N) or as
    ``a.b.c.S-E`` (addresses S to E). Allocations are saved to
    ``<snapshot_dir>/ip_snapshot.dat`` on close and restored on creation.
    """

    def __init__(self, subnet: str, snapshot_dir: str | os.PathLike = "./data") -> None:
        self.subnet = subnet
        self.snapshot_dir = Path(snapshot_dir)
        self._allocated: set[str] = set()
        self._available: set[str] = set()
        self._closed = False

        self._log(f"Initializing IPManager for subnet: {subnet}")
        try:
            self.snapshot_dir.mkdir(mode=0o755, exist_ok=True)
        except OSError as exc:
            self._log(f"Failed to create snapshot directory: {self.snapshot_dir}")
            raise IPAllocationError("Failed to create snapshot directory") from exc
        self._log(f"Snapshot directory ready: {self.snapshot_dir}")

        self._initialize_available_ips()
        self.restore_snapshot()

    @property
    def snapshot_path(self) -> Path:
        return self.snapshot_dir / "ip_snapshot.dat"

    def _log(self, message: str) -> None:
        now = datetime.now()
        stamp = f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"
        print(f"[IPManager][{self.subnet}][{stamp}] {message}", flush=True)

    def _initialize_available_ips(self) -> None:
        subnet = self.subnet
        self._log(f"Initializing available IPs for subnet: {subnet}")
        self._available.clear()

        last_dot = subnet.rfind(".")
        if last_dot == -1:
            self._log(f"Invalid subnet format: {subnet}")
            raise IPAllocationError("Invalid subnet format")

        base_ip = subnet[: last_dot + 1]
        dash = subnet.find("-")
        if dash != -1:
            start_text = subnet[last_dot + 1 : dash] if dash > last_dot else subnet[last_dot + 1 :]
            try:
                pool_start = _leading_int(start_text)
                pool_end = _leading_int(subnet[dash + 1 :])
            except ValueError as exc:
                self._log(f"Invalid IP range in subnet: {subnet}")
                raise IPAllocationError("Invalid IP range in subnet") from exc
            self._log(f"Custom IP range detected: {pool_start}-{pool_end}")
        else:
            pool_start = 1
            try:
                pool_end = _leading_int(subnet[last_dot + 1 :])
            except ValueError as exc:
                self._log(f"Invalid subnet format: {subnet}")
                raise IPAllocationError("Invalid subnet format") from exc
            self._log(f"Default IP range: 1-{pool_end}")

        if pool_start < 1 or pool_end > 254 or pool_start > pool_end:
            self._log(f"Invalid IP range: {pool_start}-{pool_end}")
            raise IPAllocationError("Invalid IP range")

        self._log(
            f"Populating available IPs from {base_ip}{pool_start} to {base_ip}{pool_end}"
        )
        self._available.update(f"{base_ip}{i}" for i in range(pool_start, pool_end + 1))
        self._log(f"Initialized {len(self._available)} available IPs")

        self._available -= self._allocated
        self._log(
            f"After removing allocated IPs, {len(self._available)} remain available"
        )

    @staticmethod
    def _is_valid_ip(ip: str) -> bool:
        try:
            ipaddress.IPv4Address(ip)
        except ValueError:
            return False
        return True

    def allocate_ip(self) -> str:
        """Allocate and return the lowest available address (in string order)."""
        if not self._available:
            self._log("No available IP addresses in pool")
            raise IPAllocationError("No available IP addresses in pool")
        ip = min(self._available)
        self._available.remove(ip)
        self._allocated.add(ip)
        self._log(f"Allocated IP: {ip} (Remaining: {len(self._available)})")
        return ip

    def allocate_specific_ip(self, ip: str) -> None:
        """Allocate the given address."""
        if not self._is_valid_ip(ip):
            raise IPAllocationError("Invalid IP address format")
        if ip in self._allocated:
            raise IPAllocationError("IP address already allocated")
        if ip not in self._available:
            raise IPAllocationError("IP address not available")
        self._available.remove(ip)
        self._allocated.add(ip)

    def deallocate_ip(self, ip: str) -> None:
        """Return an allocated address to the pool."""
        if ip not in self._allocated:
            raise IPAllocationError("IP address not currently allocated")
        self._allocated.remove(ip)
        self._available.add(ip)

    def is_allocated(self, ip: str) -> bool:
        return ip in self._allocated

    def allocated_ips(self) -> list[str]:
        """Allocated addresses, sorted as strings."""
        return sorted(self._allocated)

    def available_ips(self) -> list[str]:
        """Available addresses, sorted as strings."""
        return sorted(self._available)

    def take_snapshot(self) -> None:
        """Write the allocated addresses to the snapshot file atomically."""
        final_path = self.snapshot_path
        tmp_path = final_path.with_name(final_path.name + ".tmp")
        try:
            tmp_path.write_bytes(_encode_entries(self.allocated_ips()))
        except OSError as exc:
            raise IPAllocationError("Failed to create snapshot file") from exc
        try:
            os.replace(tmp_path, final_path)
        except OSError as exc:
            raise IPAllocationError("Failed to commit snapshot") from exc

    def restore_snapshot(self) -> None:
        """Load allocated addresses from the snapshot file, if there is one."""
        try:
            blob = self.snapshot_path.read_bytes()
        except OSError:
            return
        self._allocated.clear()
        for ip in _decode_entries(blob):
            self._allocated.add(ip)
            self._available.discard(ip)

    def close(self) -> None:
        """Save a snapshot; further calls do nothing."""
        if self._closed:
            return
        self._closed = True
        self.take_snapshot()

    def __enter__(self) -> IPManager:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()