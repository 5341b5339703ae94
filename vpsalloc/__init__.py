"""Persistent IP address and storage partition allocation for VPS hosts."""

__version__ = "0.1.0"
__all__ = ["cli", "ip_manager", "storage_manager"]