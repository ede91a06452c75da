"""WSGI entry point for the ArenaPulse API."""

import os

from arenapulse import create_app

app = create_app()


@app.route("/health")
def health_check():
    """Liveness probe for the load balancer."""
    return {"ok": True}, 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT") or 5000)
    app.run(debug=bool(os.environ.get("FLASK_DEBUG")), host="0.0.0.0", port=port)  # nosec
