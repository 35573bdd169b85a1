"""Main entry point for the elderly report pipeline"""

import argparse
import json
import sys
from pathlib import Path

from core.exceptions import LansiaReportError
from core.models import UploadedFile
from db.repository import InMemoryReportRepository
from orchestrator import Orchestrator
from stages.s4_persistence import build_bundle, request_from_draft
from stages.s6_report import render_bundle
from utils.log import setup_logging


def _print_summary(draft, validations) -> None:
    print(f"{draft.file_name}: {draft.kabupaten or '-'} / {draft.bulan_tahun or '-'}")
    for ws, validation in zip(draft.worksheets, validations):
        summary = validation.summary
        print(
            f"  [{ws.worksheet_name}] {ws.puskesmas or '-'}: "
            f"{summary.total} rows, {summary.valid} valid, {summary.error} error"
        )
        print(f"    columns: {', '.join(c.label for c in ws.columns)}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Laporan Lansia - ingest an elderly health workbook"
    )
    parser.add_argument("file", type=Path, help="Input workbook (.xlsx, .xls, .csv)")
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write the regenerated monthly report to this .xlsx path"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the draft and its validation as JSON"
    )

    args = parser.parse_args(argv)
    setup_logging("WARNING" if args.json else None)

    if not args.file.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return 1

    upload = UploadedFile(file_name=args.file.name, content=args.file.read_bytes())
    orchestrator = Orchestrator(InMemoryReportRepository())

    try:
        draft = orchestrator.build_draft(upload).draft
        validations = orchestrator.validate_draft(draft)

        if args.json:
            print(json.dumps({
                "draft": draft.model_dump(mode="json", by_alias=True),
                "validation": [v.model_dump(mode="json", by_alias=True) for v in validations],
            }, indent=2, ensure_ascii=False))
        else:
            _print_summary(draft, validations)

        if args.report:
            bundle = build_bundle(request_from_draft(draft))
            args.report.parent.mkdir(parents=True, exist_ok=True)
            args.report.write_bytes(render_bundle(bundle))
            if not args.json:
                print(f"\n✓ Report written to {args.report}")

        return 0

    except LansiaReportError as e:
        print(f"\n✗ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
