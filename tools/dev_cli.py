from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pandas as pd
from dotenv import load_dotenv

from portfolio_importer.config.paths import env_file_path, resolve_user_path
from portfolio_importer.config.settings import get_settings
from portfolio_importer.ingest.format_detector import detect_format, format_display_name
from portfolio_importer.ingest.pipeline import ImportTarget, import_text, validated_rows
from portfolio_importer.utils.logging import configure_logging


def _read(raw_path: str) -> str:
    return resolve_user_path(raw_path).read_text(encoding="utf-8-sig")


def _cmd_detect(args: argparse.Namespace) -> int:
    detected = detect_format(_read(args.file))
    print(f"format={detected.format.value}")
    print(f"name={format_display_name(detected.format)}")
    print(f"header_row_index={detected.header_row_index}")
    print(f"data_start_index={detected.data_start_index}")
    print(f"confidence={detected.confidence:.2f}")
    return 0


def _cmd_preview(args: argparse.Namespace) -> int:
    settings = get_settings()
    rows = args.rows if args.rows is not None else settings.preview_rows
    result = import_text(
        _read(args.file),
        target=ImportTarget(args.target),
        max_rows=rows,
        delimiter=settings.delimiter,
    )
    print(f"Detected: {format_display_name(result.format)} ({result.detected.confidence:.2f})")
    for issue in result.issues:
        print(f"Issue: {issue}")
    preview = validated_rows(result.rows, result.errors)
    if preview:
        print(pd.DataFrame(preview).to_string(index=False))
    print(f"Imported {result.imported_count} of {len(result.rows)} previewed rows; {len(result.errors)} errors.")
    return 0 if not result.issues else 1


def _cmd_reconcile(args: argparse.Namespace) -> int:
    from portfolio_importer.cli.reconcile_portfolio import main as reconcile_main

    return reconcile_main(args.arguments)


def _cmd_settings(_: argparse.Namespace) -> int:
    settings = get_settings()
    print(f"APP_ENV={settings.app_env}")
    print(f"LOG_LEVEL={settings.log_level}")
    print(f"PORTFOLIO_IMPORT_OUTPUT={settings.default_output_path}")
    print(f"PORTFOLIO_IMPORT_PREVIEW_ROWS={settings.preview_rows}")
    print(f"PORTFOLIO_IMPORT_DELIMITER={settings.delimiter!r}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Portfolio importer developer CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sp_detect = subparsers.add_parser("detect", help="Print the detected export layout")
    sp_detect.add_argument("file")
    sp_detect.set_defaults(func=_cmd_detect)

    sp_preview = subparsers.add_parser("preview", help="Validate the first rows of an export")
    sp_preview.add_argument("file")
    sp_preview.add_argument(
        "--rows",
        type=int,
        default=None,
        help="Rows to preview (default: PORTFOLIO_IMPORT_PREVIEW_ROWS).",
    )
    sp_preview.add_argument(
        "--target",
        choices=[target.value for target in ImportTarget],
        default=ImportTarget.PORTFOLIO.value,
        help="What the rows are imported as.",
    )
    sp_preview.set_defaults(func=_cmd_preview)

    sp_reconcile = subparsers.add_parser(
        "reconcile", help="Run reconcile-portfolio with the remaining arguments"
    )
    sp_reconcile.add_argument("arguments", nargs=argparse.REMAINDER)
    sp_reconcile.set_defaults(func=_cmd_reconcile)

    sp_settings = subparsers.add_parser("settings", help="Print resolved settings")
    sp_settings.set_defaults(func=_cmd_settings)

    return parser


def main() -> int:
    load_dotenv(dotenv_path=env_file_path())
    configure_logging()
    parser = build_parser()
    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
