"""Persistence for busy blocks and group membership."""

from whosfree.storage.database import BusyBlockStore

__all__ = ["BusyBlockStore"]
