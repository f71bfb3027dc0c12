"""Base exception shared by quire's build and publish steps."""

from __future__ import annotations


class QuireError(RuntimeError):
    """Raised for failures the CLI reports to the operator and exits on."""
