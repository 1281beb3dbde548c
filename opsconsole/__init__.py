"""Ops console backend: cached, tenant-scoped coordination over the operations store."""

__version__ = "0.1.0"
