"""Session endpoints for the SPA."""

from firebase_admin import auth, firestore
from flask import current_app, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from arenapulse.constants import USERS_COLLECTION

from . import bp


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    Called by the client after a successful Firebase login.
    It receives the ID token, verifies it, and creates a server-side session.
    """
    id_token = (request.get_json(silent=True) or {}).get("idToken")
    if not id_token:
        return jsonify({"status": "error", "message": "idToken is required."}), 400
    try:
        decoded_token = auth.verify_id_token(id_token)
        uid = decoded_token["uid"]
        db = firestore.client()
        user_doc = db.collection(USERS_COLLECTION).document(uid).get()
        if user_doc.exists:
            user_info = user_doc.to_dict()
            session["user_id"] = uid
            session["is_admin"] = user_info.get("isAdmin", False)
            return jsonify({"status": "success"})
        else:
            return jsonify({"status": "error", "message": "User not found in Firestore."}), 404
    except Exception as e:
        current_app.logger.error(f"Error during session login: {e}")
        return jsonify({"status": "error", "message": "Invalid token or server error."}), 401


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session."""
    session.clear()
    return jsonify({"status": "success"})


@bp.route("/csrf_token", methods=["GET"])
def csrf_token():
    """Hand the SPA a CSRF token to send back in the X-CSRFToken header."""
    return jsonify({"csrfToken": generate_csrf()})
