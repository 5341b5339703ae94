"""Command that creates two address pools, allocates from each and saves them."""

from __future__ import annotations

import argparse
import contextlib
from datetime import datetime

from vpsalloc.ip_manager import IPAllocationError, IPManager

_POOL1_SUBNET = "192.168.1.100"
_POOL2_SUBNET = "192.168.2.10-50"


def _log(message: str) -> None:
    now = datetime.now()
    stamp = f"{now:%Y-%m-%d %H:%M:%S}.{now.microsecond // 1000:03d}"
    print(f"[{stamp}] {message}", flush=True)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="vpsalloc",
        description="Allocate one address from each of two demonstration pools.",
    )
    parser.add_argument(
        "--data-dir",
        default="./data",
        help="directory holding the snapshot file (default: ./data)",
    )
    return parser.parse_args(argv)


def _run(data_dir: str) -> None:
    with contextlib.ExitStack() as stack:
        _log("Creating IP pool 1 (192.168.1.1-100)")
        pool1 = stack.enter_context(IPManager(_POOL1_SUBNET, data_dir))

        _log("Creating IP pool 2 (192.168.2.10-50)")
        pool2 = stack.enter_context(IPManager(_POOL2_SUBNET, data_dir))

        _log("Allocating from pool 1")
        ip1 = pool1.allocate_ip()
        _log(f"Allocated IP from pool 1: {ip1}")

        _log("Allocating from pool 2")
        ip2 = pool2.allocate_ip()
        _log(f"Allocated IP from pool 2: {ip2}")

        available1 = pool1.available_ips()
        _log(f"Pool 1 has {len(available1)} available IPs remaining")

        available2 = pool2.available_ips()
        _log(f"Pool 2 has {len(available2)} available IPs remaining")

    _log("IP pools destroyed, snapshots saved")


def main(argv: list[str] | None = None) -> int:
    """Run the demonstration; return 0 on success, 1 on allocation errors, 2 otherwise."""
    args = _parse_args(argv)
    try:
        _run(args.data_dir)
    except IPAllocationError as exc:
        _log(f"ERROR: {exc}")
        return 1
    except Exception as exc:  # noqa: BLE001 - reported as an unexpected failure
        _log(f"UNEXPECTED ERROR: {exc}")
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())