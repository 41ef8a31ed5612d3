from __future__ import annotations

"""Subpackage aggregating individual auth route modules."""

__all__ = [
    "login",
    "two_factor",
    "register",
    "password_reset",
]
