"""Re-sync every non-expired subscription with Lemon Squeezy.

Meant to run on a schedule (cron, a platform job runner) next to the
webhook, so rows converge even when a delivery was missed.
"""

from dotenv import load_dotenv
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

load_dotenv(".env")

from remindly.core.database import create_db_engine, create_session_factory
from remindly.core.settings import Settings
from remindly.services.billing_reconciler import BillingReconciler
from remindly.services.lemonsqueezy import LemonSqueezyClient
from remindly.services.quota import QuotaPolicy


def main() -> int:
    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    session_factory = create_session_factory(create_db_engine(settings.database_url))
    reconciler = BillingReconciler(LemonSqueezyClient.from_settings(settings), QuotaPolicy.from_settings(settings))

    db = session_factory()
    try:
        report = reconciler.sync_all(db)
    finally:
        db.close()
    print(f"synced={len(report.synced)} failed={len(report.failed)}")
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
