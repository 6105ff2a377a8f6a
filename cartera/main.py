"""Command line entry point: print the loan portfolio report."""
import argparse
import logging
import os
import sys

from cartera.accrual import parse_date
from cartera.config import DEFAULT_DB_NAME
from cartera.database import DocumentStore
from cartera.engine import LedgerEngine
from cartera.exceptions import CarteraError
from cartera.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(prog="cartera", description="Loan portfolio report")
    parser.add_argument("--db", default=os.getenv("CARTERA_DB", DEFAULT_DB_NAME),
                        help="Path to the ledger database")
    parser.add_argument("--as-of", dest="as_of", default=None,
                        help="Accrue interest up to this date (YYYY-MM-DD); default today")
    parser.add_argument("--client", default=None, help="Filter by client name")
    parser.add_argument("--log-level", default=os.getenv("CARTERA_LOG_LEVEL", "WARNING"))
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        today = parse_date(args.as_of, 'as_of') if args.as_of else None
        with DocumentStore(args.db) as db:
            engine = LedgerEngine(db)
            df = engine.reports.portfolio_report(today=today, search=args.client)
            dashboard = engine.dashboard(today=today)
    except CarteraError as e:
        logger.error("Report failed: %s", e)
        return 1

    if df.empty:
        print("No loans found.")
    else:
        print(df.to_string(index=False))
    print()
    for key, value in dashboard.items():
        print(f"{key}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
