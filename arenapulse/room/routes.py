"""Routes for the room blueprint."""

from __future__ import annotations

from typing import Any

from flask import g, jsonify, request

from arenapulse.auth.decorators import login_required
from arenapulse.core.forms import validate_form

from . import bp
from .forms import EditMessageForm, MessageForm
from .services import RoomService

GROUP_ROOM = "/<string:tournament_id>/groups/<string:group_id>/room"
MY_ROOM = "/<string:tournament_id>/my-group/room"


def _include_deleted() -> bool:
    return request.args.get("include_deleted", "").lower() in ("1", "true")


def _send(tournament_id: str, group_id: str | None) -> Any:
    form = validate_form(MessageForm())
    message = RoomService.send_message(
        tournament_id,
        g.user,
        form.content.data,
        message_type=form.type.data,
        image_url=form.image_url.data,
        group_id=group_id,
    )
    return jsonify({"message": message}), 201


def _edit(tournament_id: str, message_id: str, group_id: str | None) -> Any:
    form = validate_form(EditMessageForm())
    message = RoomService.edit_message(
        tournament_id, g.user, message_id, form.content.data, group_id=group_id
    )
    return jsonify({"message": message})


@bp.route(GROUP_ROOM, methods=["POST"])
@login_required
def ensure_room(tournament_id: str, group_id: str) -> Any:
    """Create the group's room if it does not exist yet."""
    room = RoomService.ensure_room(tournament_id, group_id, g.user)
    return jsonify({"room": room})


@bp.route(GROUP_ROOM, methods=["DELETE"])
@login_required
def delete_room(tournament_id: str, group_id: str) -> Any:
    """Delete the group's room and all of its messages."""
    room_id = RoomService.delete_room(tournament_id, group_id, g.user)
    return jsonify({"ok": True, "deletedRoomId": room_id})


@bp.route(f"{GROUP_ROOM}/messages", methods=["GET"])
@login_required
def group_messages(tournament_id: str, group_id: str) -> Any:
    result = RoomService.list_messages(
        tournament_id,
        g.user,
        group_id=group_id,
        include_deleted=_include_deleted(),
    )
    return jsonify(result)


@bp.route(f"{GROUP_ROOM}/messages", methods=["POST"])
@login_required
def send_group_message(tournament_id: str, group_id: str) -> Any:
    """Post to a group's room as organizer."""
    return _send(tournament_id, group_id)


@bp.route(f"{GROUP_ROOM}/messages/<string:message_id>", methods=["PATCH"])
@login_required
def edit_group_message(tournament_id: str, group_id: str, message_id: str) -> Any:
    return _edit(tournament_id, message_id, group_id)


@bp.route(f"{GROUP_ROOM}/messages/<string:message_id>", methods=["DELETE"])
@login_required
def delete_group_message(tournament_id: str, group_id: str, message_id: str) -> Any:
    RoomService.delete_message(tournament_id, g.user, message_id, group_id=group_id)
    return jsonify({"ok": True})


@bp.route(f"{MY_ROOM}/messages", methods=["GET"])
@login_required
def my_group_messages(tournament_id: str) -> Any:
    """Messages of the caller's group room."""
    return jsonify(RoomService.list_messages(tournament_id, g.user))


@bp.route(f"{MY_ROOM}/messages", methods=["POST"])
@login_required
def send_my_group_message(tournament_id: str) -> Any:
    return _send(tournament_id, None)


@bp.route(f"{MY_ROOM}/messages/<string:message_id>", methods=["PATCH"])
@login_required
def edit_my_group_message(tournament_id: str, message_id: str) -> Any:
    """Edit one of the caller's own messages."""
    return _edit(tournament_id, message_id, None)


@bp.route(f"{MY_ROOM}/messages/<string:message_id>", methods=["DELETE"])
@login_required
def delete_my_group_message(tournament_id: str, message_id: str) -> Any:
    RoomService.delete_message(tournament_id, g.user, message_id)
    return jsonify({"ok": True})
