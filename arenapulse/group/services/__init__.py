"""Group services."""

from .group_service import GroupService
from .grouping import partition_participants

__all__ = ["GroupService", "partition_participants"]
