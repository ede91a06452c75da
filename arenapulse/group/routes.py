"""Routes for the group blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, g, jsonify

from arenapulse.auth.decorators import login_required
from arenapulse.core.forms import validate_form

from . import bp
from .forms import AutoGroupForm, GroupForm, MemberForm, MoveMemberForm, RenameGroupForm
from .services import GroupService


@bp.route("/<string:tournament_id>/groups", methods=["GET"])
@login_required
def list_groups(tournament_id: str) -> Any:
    """List groups with member team names."""
    return jsonify({"groups": GroupService.list_groups(tournament_id, g.user)})


@bp.route("/<string:tournament_id>/groups", methods=["POST"])
@login_required
def create_group(tournament_id: str) -> Any:
    """Create a group from a list of registered user ids."""
    form = validate_form(GroupForm())
    group = GroupService.create_group(
        tournament_id, g.user, form.member_ids.data or [], name=form.name.data
    )
    return jsonify({"group": group}), 201


@bp.route("/<string:tournament_id>/groups/auto", methods=["POST"])
@login_required
def auto_group(tournament_id: str) -> Any:
    """Replace all groups with fixed-size groups in registration order."""
    form = validate_form(AutoGroupForm())
    size = form.size.data or current_app.config["DEFAULT_GROUP_SIZE"]
    groups = GroupService.auto_group(tournament_id, g.user, size=size)
    current_app.logger.info(
        f"Tournament {tournament_id} auto-grouped into {len(groups)} group(s)"
    )
    return jsonify({"groups": groups})


@bp.route("/<string:tournament_id>/groups/<string:group_id>/rename", methods=["POST"])
@login_required
def rename_group(tournament_id: str, group_id: str) -> Any:
    form = validate_form(RenameGroupForm())
    groups = GroupService.rename_group(tournament_id, group_id, g.user, form.name.data)
    return jsonify({"groups": groups})


@bp.route("/<string:tournament_id>/groups/<string:group_id>/members", methods=["POST"])
@login_required
def add_member(tournament_id: str, group_id: str) -> Any:
    form = validate_form(MemberForm())
    groups = GroupService.add_member(tournament_id, group_id, g.user, form.user_id.data)
    return jsonify({"groups": groups})


@bp.route(
    "/<string:tournament_id>/groups/<string:group_id>/remove-member", methods=["POST"]
)
@login_required
def remove_member(tournament_id: str, group_id: str) -> Any:
    form = validate_form(MemberForm())
    groups = GroupService.remove_member(
        tournament_id, group_id, g.user, form.user_id.data
    )
    return jsonify({"groups": groups})


@bp.route("/<string:tournament_id>/groups/move-member", methods=["POST"])
@login_required
def move_member(tournament_id: str) -> Any:
    """Move a member between two groups of the tournament."""
    form = validate_form(MoveMemberForm())
    groups = GroupService.move_member(
        tournament_id,
        g.user,
        form.user_id.data,
        form.from_group_id.data,
        form.to_group_id.data,
    )
    return jsonify({"groups": groups})


@bp.route("/<string:tournament_id>/groups/<string:group_id>", methods=["DELETE"])
@login_required
def delete_group(tournament_id: str, group_id: str) -> Any:
    """Delete a group and its room."""
    GroupService.delete_group(tournament_id, group_id, g.user)
    return jsonify({"ok": True})


@bp.route("/<string:tournament_id>/my-group", methods=["GET"])
@login_required
def my_group(tournament_id: str) -> Any:
    """The caller's group, or null when not grouped yet."""
    return jsonify({"group": GroupService.get_my_group(tournament_id, g.user)})


@bp.route("/<string:tournament_id>/my-group/teams", methods=["GET"])
@login_required
def my_group_teams(tournament_id: str) -> Any:
    teams = GroupService.get_my_group_teams(tournament_id, g.user)
    return jsonify({"teams": teams})
