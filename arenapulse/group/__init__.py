"""The group blueprint."""

from flask import Blueprint

bp = Blueprint("group", __name__, url_prefix="/api/tournaments")

from . import routes  # noqa: E402, F401
from .models import Group, GroupMember  # noqa: E402
from .services import GroupService  # noqa: E402

__all__ = ["Group", "GroupMember", "GroupService", "routes"]
