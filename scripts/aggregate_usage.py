"""Roll one day's usage events into usage_aggregation rows.

Usage:
    python -m scripts.aggregate_usage [YYYY-MM-DD]
If the date is omitted, aggregates yesterday (UTC).
Requires Postgres (DATABASE_URL).
"""

import asyncio
import sys
from datetime import date

from backoffice.application.services.usage_tracker import UsageTracker
from backoffice.shared.telemetry.logging import setup_logging
from backoffice.domain.exceptions import SqlNotConfiguredException
from backoffice.infrastructure.persistence.database import get_session_factory
from backoffice.infrastructure.services import PlanCatalogService, UsageEventService


async def main() -> None:
    setup_logging()
    try:
        session_factory = get_session_factory()
    except SqlNotConfiguredException:
        print("DATABASE_URL not configured", file=sys.stderr)
        sys.exit(1)

    target = None
    if len(sys.argv) > 1:
        try:
            target = date.fromisoformat(sys.argv[1])
        except ValueError:
            print(f"Invalid date: {sys.argv[1]} (expected YYYY-MM-DD)", file=sys.stderr)
            sys.exit(1)

    tracker = UsageTracker(
        UsageEventService(session_factory), PlanCatalogService(session_factory)
    )
    written = await tracker.aggregate_daily_metrics(target)
    print(f"Done. Aggregation rows written: {written}")


if __name__ == "__main__":
    asyncio.run(main())
