"""Compliance core: authorization, audit trail, bootstrap and incident detection."""

__version__ = "0.1.0"
