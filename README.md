# vpsalloc

Keeps track of which IP addresses and storage partitions on a VPS host have
been handed out. The allocation state is saved to disk, so it is still there
after a restart.

## Installation

    pip install .

To run the tests:

    pip install .[test]
    pytest

## IP pools

`vpsalloc.ip_manager.IPManager(subnet, snapshot_dir="./data")` manages one
pool of IPv4 addresses that differ only in the last octet. The pool is written
in one of two ways:

- `192.168.1.100` gives the addresses `192.168.1.1` to `192.168.1.100`;
- `192.168.2.10-50` gives the addresses `192.168.2.10` to `192.168.2.50`.

Host numbers must be between 1 and 254, and the start must not be greater
than the end. Any other subnet raises `IPAllocationError`.

```python
from vpsalloc.ip_manager import IPManager, IPAllocationError

with IPManager("192.168.2.10-50", "./data") as pool:
    ip = pool.allocate_ip()
    pool.allocate_specific_ip("192.168.2.20")
    print(pool.is_allocated(ip))       # True
    pool.deallocate_ip(ip)
    print(len(pool.available_ips()))
```

- `allocate_ip()` takes the smallest free address, compared as a string.
  For example, `192.168.1.10` comes before `192.168.1.2`.
- `allocate_specific_ip(ip)` takes the given address. It raises
  `IPAllocationError` in these cases: the address is not a valid IPv4
  address, it is already allocated, or it is not in the pool.
- `deallocate_ip(ip)` puts an allocated address back in the pool.
- `is_allocated(ip)` checks whether an address is allocated.
- `allocated_ips()` and `available_ips()` return sorted lists of strings.

The allocated addresses are kept in `ip_snapshot.dat` inside the snapshot
directory. The directory is created if it does not exist.

- The snapshot is read when the manager is created.
- It is written when the manager is closed, by leaving the `with` block or by
  calling `close()`. Closing a second time does nothing.
- `take_snapshot()` and `restore_snapshot()` can also be called directly.

Writes go to a temporary file first, which then replaces the snapshot. Nothing
is saved if the manager is never closed and `take_snapshot()` is never called.

## Storage pools

`vpsalloc.storage_manager.StorageManager(pool, storage_dir="./storage_data")`
sets up 100 partitions, `part0` to `part99`, in the storage directory. Each
partition is a directory with a `data.bin` file of 1 MiB.

Creating the manager truncates each `data.bin` again, so its contents are
lost. A partition whose directory or file cannot be created is left out of the
pool.

```python
from vpsalloc.storage_manager import StorageManager, StorageAllocationError

with StorageManager("default", "./storage_data") as storage:
    part = storage.allocate_part()      # smallest free name, as a string
    print(storage.is_allocated(part))   # True
    storage.deallocate_part(part)
    print(storage.allocated_parts(), len(storage.available_parts()))
```

The allocated partitions are saved to `backups/backup.dat` in the storage
directory.

- The file is read when the manager is created.
- It is written by `close()`, or when the `with` block ends.
- `take_backup()` and `restore_backup()` can also be called directly.

Errors raise `StorageAllocationError`.

## Command line

    vpsalloc [--data-dir DIR]

This command is a demonstration. It works as follows:

1. It creates two IP pools, `192.168.1.100` and `192.168.2.10-50`. Both keep
   their snapshot in `DIR`, which is `./data` by default.
2. It takes one address from each pool.
3. It prints how many addresses each pool still has free, with timestamps.
4. It closes both pools, which saves the snapshot.

The command exits with status 0 on success, 1 on an allocation error and 2 on
any other error.

## What it does not do

vpsalloc only records allocations. It does not configure network interfaces
or route addresses, and it does not mount or attach partitions.

The IP pools and the storage pool are kept apart: the IP pools are never
linked to the storage partitions.

The command line covers only the IP pools. Storage pools can be used only from
Python.