"""Durable browser-style key-value storage and the Local Edit Store."""

from __future__ import annotations

__all__ = ["__doc__"]
