"""
Reconcile stale gateway payments.

Run from cron. Payments still pending (or created) some minutes after
creation are checked against Cashfree one at a time, and their local status
is brought in line with the gateway's. Paid orders also mark the booking
as paid.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from firebase_admin import firestore

# Add the project root to the Python path to allow importing 'arenapulse'
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from arenapulse import create_app  # noqa: E402
from arenapulse.errors import GatewayError  # noqa: E402
from arenapulse.payments.gateway import CashfreeClient  # noqa: E402
from arenapulse.payments.services import PaymentService  # noqa: E402

logger = logging.getLogger("reconcile_payments")


def main() -> int:
    """Main entry point for the reconcile script."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    app = create_app()
    config = app.config
    try:
        gateway = CashfreeClient.from_config(config)
    except GatewayError as e:
        logger.error(f"Cannot reconcile: {e.message}")
        return 1

    with app.app_context():
        summary = PaymentService.reconcile_pending(
            gateway,
            older_than_minutes=config["RECONCILE_AFTER_MINUTES"],
            limit=config["RECONCILE_BATCH_SIZE"],
            db=firestore.client(),
        )

    logger.info(
        f"Checked {summary['checked']}: {summary['completed']} completed, "
        f"{summary['failed']} failed, {summary['unchanged']} unchanged, "
        f"{summary['errors']} error(s)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
