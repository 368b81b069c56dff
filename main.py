import sys
import argparse
import datetime as dt
import pandas as pd
from typing import Dict, List, Optional

from providers.base import RateDocument
from providers.errors import PersistenceError, RateUpdateError
from recorder import apply_rates
from scraper import load_sources, run_aggregate
from store import load_document, save_document

def to_dataframe(doc: RateDocument, rates: Dict[str, float], changed: List[str]) -> pd.DataFrame:
    rows = [
        {
            "product": pid,
            "rate": rate,
            "rate_pct": round(rate * 100, 4),
            "current_since": doc.products[pid].current_since.isoformat(),
            "changed": pid in changed,
        }
        for pid, rate in rates.items()
    ]
    return pd.DataFrame(rows, columns=["product", "rate", "rate_pct", "current_since", "changed"])

def history_dataframe(doc: RateDocument) -> pd.DataFrame:
    rows = [
        {"product": pid, "date": entry.date.isoformat(), "rate": entry.rate}
        for pid, product in doc.products.items()
        for entry in product.history
    ]
    df = pd.DataFrame(rows, columns=["product", "date", "rate"])
    if df.empty:
        return df
    return df.sort_values(by=["product", "date"], kind="stable").reset_index(drop=True)

def save_history_csv(doc: RateDocument, path: str) -> str:
    try:
        history_dataframe(doc).to_csv(path, index=False, encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"cannot write history export: {e}", path=path) from e
    return path

def today_utc() -> dt.date:
    return dt.datetime.now(dt.timezone.utc).date()

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Refresh French regulated savings rates from Service-Public")
    parser.add_argument("--rates", default="rates.json", help="Rate document to update")
    parser.add_argument("--config", default="sources.yaml", help="Product source configuration")
    parser.add_argument("--date", type=dt.date.fromisoformat, help="Effective date (YYYY-MM-DD), defaults to today UTC")
    parser.add_argument("--dry-run", action="store_true", help="Fetch and report without writing the rate document")
    parser.add_argument("--export-csv", help="Also write the full rate history to this CSV file")
    return parser

def run(args: argparse.Namespace) -> pd.DataFrame:
    config = load_sources(args.config)
    doc = load_document(args.rates, [src.id for src in config.sources])
    effective_date = args.date or today_utc()

    rates = run_aggregate(config)
    changed = apply_rates(doc, rates, effective_date)
    # export before the state write: a failed export must leave rates.json as it was
    if args.export_csv:
        save_history_csv(doc, args.export_csv)
    if not args.dry_run:
        save_document(doc, args.rates)
    return to_dataframe(doc, rates, changed)

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        df = run(args)
    except RateUpdateError as e:
        print("UPDATE FAILED:", file=sys.stderr)
        print(e, file=sys.stderr)
        return 1
    print("OK: rates fetched from Service-Public" + (" (dry run, nothing written)" if args.dry_run else ""))
    print(df.to_string(index=False))
    return 0

if __name__ == "__main__":
    sys.exit(main())
