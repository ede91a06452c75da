"""Routes for the tournament blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, g, jsonify, request

from arenapulse.auth.decorators import login_required
from arenapulse.core.forms import validate_form

from . import bp
from .forms import RegistrationForm, TournamentForm
from .services import EDITABLE_FIELDS, TournamentService


@bp.route("/", methods=["GET"])
def list_tournaments() -> Any:
    """List tournaments. Public."""
    args = request.args
    result = TournamentService.list_tournaments(
        organizer_id=args.get("organizer_id"),
        participant_id=args.get("participant_id"),
        active=args.get("active", "true").lower() == "true",
        page=args.get("page", 1, type=int),
        limit=args.get("limit", 20, type=int),
    )
    return jsonify(result)


@bp.route("/", methods=["POST"])
@login_required
def create_tournament() -> Any:
    """Create a new tournament."""
    form = validate_form(TournamentForm())
    body = request.get_json(silent=True) or {}
    # Absent fields keep the service defaults
    data = {k: v for k, v in form.data.items() if k in body}
    tournament_id = TournamentService.create_tournament(data, g.user)
    current_app.logger.info(f"Tournament {tournament_id} created")
    return jsonify({"tournament": TournamentService.get_tournament(tournament_id)}), 201


@bp.route("/<string:tournament_id>", methods=["GET"])
def get_tournament(tournament_id: str) -> Any:
    """View a single tournament."""
    return jsonify({"tournament": TournamentService.get_tournament(tournament_id)})


@bp.route("/<string:tournament_id>", methods=["PUT", "PATCH"])
@login_required
def update_tournament(tournament_id: str) -> Any:
    """Edit an existing tournament. Only fields present in the body change."""
    body = request.get_json(silent=True) or {}
    update_data = {k: v for k, v in body.items() if k in EDITABLE_FIELDS}
    tournament = TournamentService.update_tournament(tournament_id, g.user, update_data)
    return jsonify({"tournament": tournament})


@bp.route("/<string:tournament_id>", methods=["DELETE"])
@login_required
def delete_tournament(tournament_id: str) -> Any:
    """Delete a tournament with its groups and rooms."""
    TournamentService.delete_tournament(tournament_id, g.user)
    return jsonify({"ok": True})


@bp.route("/<string:tournament_id>/register", methods=["POST"])
@login_required
def register(tournament_id: str) -> Any:
    """Register the current user's team."""
    validate_form(RegistrationForm())
    body = request.get_json(silent=True) or {}
    participant = TournamentService.register(tournament_id, g.user, body)
    return jsonify({"participant": participant}), 201


@bp.route("/<string:tournament_id>/participants", methods=["GET"])
@login_required
def list_participants(tournament_id: str) -> Any:
    """List registrations. Organizer only."""
    participants = TournamentService.list_participants(tournament_id, g.user)
    return jsonify({"participants": participants})


@bp.route("/<string:tournament_id>/participants/<string:user_id>", methods=["DELETE"])
@login_required
def remove_participant(tournament_id: str, user_id: str) -> Any:
    """Remove a registration, cascading to group and room membership."""
    participants = TournamentService.remove_participant(tournament_id, g.user, user_id)
    return jsonify({"participants": participants})
