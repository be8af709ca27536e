"""ADLEDGER — Command line tools.

  adledger import-csv --client-id <uuid> --file report.csv [--apply-to auto]
  adledger export-csv --client-id <uuid> [--out-dir exports] [--dataset metrics]
  adledger pull --client-id <uuid> --customer-id 123-456-7890
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from adledger.connectors.google_ads.client import GoogleAdsAPIError, GoogleAdsClient
from adledger.connectors.google_ads.collector import pull_account
from adledger.core.logging import get_logger
from adledger.database import get_session, init_db
from adledger.export.csv_export import export_dataset, export_filename
from adledger.ingest.csv_import import APPLY_MODES, import_csv_file
from adledger.ingest.decoder import DecodeError
from adledger.ingest.storage import SQLModelStore
from adledger.models.canonical_models import Dataset
from adledger.models.ingest_models import IngestOutcome

logger = get_logger("cli")


def _print_outcome(outcome: IngestOutcome) -> int:
    print(json.dumps(outcome.body(), indent=2, ensure_ascii=False, default=str))
    return 0 if outcome.ok else 1


def cmd_import_csv(args: argparse.Namespace) -> int:
    session = next(get_session())
    try:
        outcome = import_csv_file(
            args.file,
            args.client_id,
            SQLModelStore(session),
            report_name=args.report_name,
            campaign_id=args.campaign_id,
            campaign_name=args.campaign_name,
            start=args.start,
            end=args.end,
            apply_to=args.apply_to,
        )
    except DecodeError as e:
        print(f"Could not read {args.file}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Could not open {args.file}: {e}", file=sys.stderr)
        return 1
    finally:
        session.close()
    return _print_outcome(outcome)


def cmd_export_csv(args: argparse.Namespace) -> int:
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    datasets = [Dataset(d) for d in args.dataset] if args.dataset else [
        Dataset.METRICS,
        Dataset.KEYWORDS,
    ]
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")

    session = next(get_session())
    try:
        store = SQLModelStore(session)
        for dataset in datasets:
            text, rows = export_dataset(store, dataset, args.client_id, args.start, args.end)
            path = out_dir / export_filename(dataset, args.client_id, stamp)
            path.write_text(text, encoding="utf-8")
            print(f"{dataset.value}: {path} (rows={rows})")
    finally:
        session.close()
    return 0


async def _pull(args: argparse.Namespace) -> IngestOutcome:
    client = GoogleAdsClient()
    session = next(get_session())
    try:
        return await pull_account(
            SQLModelStore(session),
            client,
            args.client_id,
            args.customer_id,
            start=args.start,
            end=args.end,
        )
    finally:
        session.close()
        await client.close()


def cmd_pull(args: argparse.Namespace) -> int:
    try:
        outcome = asyncio.run(_pull(args))
    except GoogleAdsAPIError as e:
        print(f"Google Ads API error ({e.status_code}): {e}", file=sys.stderr)
        return 1
    return _print_outcome(outcome)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="adledger", description=__doc__.split("\n")[0])
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("import-csv", help="Import a Google Ads UI CSV export")
    p.add_argument("--client-id", required=True)
    p.add_argument("--file", required=True)
    p.add_argument("--report-name")
    p.add_argument("--campaign-id")
    p.add_argument("--campaign-name")
    p.add_argument("--start", help="YYYY-MM-DD")
    p.add_argument("--end", help="YYYY-MM-DD")
    p.add_argument(
        "--apply-to",
        default="none",
        help=f"{'|'.join(APPLY_MODES)}; unknown values mean none",
    )
    p.set_defaults(func=cmd_import_csv)

    p = sub.add_parser("export-csv", help="Export canonical tables to CSV")
    p.add_argument("--client-id", required=True)
    p.add_argument("--out-dir", default="exports")
    p.add_argument("--start")
    p.add_argument("--end")
    p.add_argument(
        "--dataset",
        action="append",
        choices=[d.value for d in Dataset],
        help="Repeatable; defaults to metrics and keywords",
    )
    p.set_defaults(func=cmd_export_csv)

    p = sub.add_parser("pull", help="Pull one account from the Google Ads API")
    p.add_argument("--client-id", required=True)
    p.add_argument("--customer-id", required=True)
    p.add_argument("--start")
    p.add_argument("--end")
    p.set_defaults(func=cmd_pull)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_db()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
