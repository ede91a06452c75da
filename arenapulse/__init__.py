"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .constants import DEFAULT_GROUP_SIZE, USERS_COLLECTION
from .extensions import csrf


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from env, file or default credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        options = {"projectId": project_id} if project_id else None
        try:
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        DEFAULT_GROUP_SIZE=int(
            os.environ.get("DEFAULT_GROUP_SIZE") or DEFAULT_GROUP_SIZE
        ),
        CASHFREE_APP_ID=os.environ.get("CASHFREE_APP_ID"),
        CASHFREE_SECRET_KEY=os.environ.get("CASHFREE_SECRET_KEY"),
        CASHFREE_ENV=os.environ.get("CASHFREE_ENV") or "sandbox",
        CASHFREE_API_VERSION=os.environ.get("CASHFREE_API_VERSION") or "2022-09-01",
        CF_WEBHOOK_SECRET=os.environ.get("CF_WEBHOOK_SECRET"),
        CF_RETURN_URL=os.environ.get("CF_RETURN_URL"),
        BACKEND_PUBLIC_URL=os.environ.get("BACKEND_PUBLIC_URL"),
        RECONCILE_AFTER_MINUTES=int(os.environ.get("RECONCILE_AFTER_MINUTES") or 15),
        RECONCILE_BATCH_SIZE=int(os.environ.get("RECONCILE_BATCH_SIZE") or 50),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import tournament as tournament_bp

    app.register_blueprint(tournament_bp.bp)

    from . import group as group_bp

    app.register_blueprint(group_bp.bp)

    from . import room as room_bp

    app.register_blueprint(room_bp.bp)

    from . import payments as payments_bp

    app.register_blueprint(payments_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the user data from Firestore and store it in g."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        try:
            db = firestore.client()
            user_doc = db.collection(USERS_COLLECTION).document(user_id).get()
            if user_doc.exists:
                g.user = user_doc.to_dict()
                g.user["uid"] = user_id
            else:
                # User ID in session but no user in DB. Clear the session.
                session.clear()
                current_app.logger.warning(
                    f"User {user_id} in session but not found in Firestore."
                )
        except Exception as e:
            current_app.logger.error(f"Error loading user from session: {e}")
            session.clear()

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
