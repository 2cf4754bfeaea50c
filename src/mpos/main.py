from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date

from mpos.application.container import AppContainer, build_container
from mpos.config import get_app_paths
from mpos.logging_config import setup_logging

log = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mpos", description="Merchandise point of sale")
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Print the daily sales report as text")
    report.add_argument("--date", default=date.today().isoformat())

    export = sub.add_parser("export", help="Write the daily report to an Excel workbook")
    export.add_argument("--date", default=date.today().isoformat())
    export.add_argument("--xlsx", required=True)

    sub.add_parser("health", help="Check stored data for inconsistencies")
    sub.add_parser("seed-demo", help="Replace catalog and sales with demo data")
    return parser.parse_args(argv)


async def _run(app: AppContainer, args: argparse.Namespace) -> int:
    await app.settings.mark_app_started()
    try:
        await app.operations.initialize_default_data()
        if args.command == "report":
            print(await app.reporting.export_daily_report_as_text(args.date), end="")
        elif args.command == "export":
            await app.reporting.export_daily_report_excel(args.xlsx, args.date)
            print(args.xlsx)
        elif args.command == "health":
            report = await app.operations.run_health_check()
            print(f"products={report.products_count} cart={report.cart_lines} sales={report.sales_count} returns={report.returns_count}")
            for issue in report.issues:
                print(f"- {issue}")
            return 0 if report.ok else 1
        elif args.command == "seed-demo":
            await app.operations.create_demo_data()
        return 0
    finally:
        await app.settings.mark_app_closed()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    app = build_container(paths.store_path)
    log.info("app_started store=%s command=%s", paths.store_path, args.command)
    sys.exit(asyncio.run(_run(app, args)))


if __name__ == "__main__":
    main()
