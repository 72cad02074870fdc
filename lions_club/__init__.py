"""Membership, event and check-in backend for a Lions Club chapter."""

__version__ = "1.0.0"
