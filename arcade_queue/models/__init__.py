"""
Database Models

Every table carries a tenant id; all store queries filter on it.
"""
from arcade_queue.models.arcade import Arcade
from arcade_queue.models.history import ArcadeHistory
from arcade_queue.models.binding import GroupBinding
from arcade_queue.models.allow_list import AllowListEntry

__all__ = ["Arcade", "ArcadeHistory", "GroupBinding", "AllowListEntry"]
