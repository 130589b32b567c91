import argparse
import logging
import sys
from pathlib import Path

from cleaning_inventory import data_handler, services, settings, utils
from cleaning_inventory.logger import setup_logger
from cleaning_inventory.readings import import_readings_csv, parse_device
from cleaning_inventory.renderers import RENDERER_REGISTRY, TextReportRenderer
from cleaning_inventory.schemas import ConsolidatedDevice
from cleaning_inventory.store import InventoryStore, StoreError

logger = logging.getLogger("cleaning_inventory.main")


def _report_failure(result) -> int:
    logger.error(f"❌ {result.error}")
    return 1


def cmd_summary(store: InventoryStore, args: argparse.Namespace) -> int:
    result = services.load_summary(store)
    if not result.success:
        return _report_failure(result)
    summary = result.data
    text = TextReportRenderer().render(summary.records, summary.consolidated)
    print(text.content.decode("utf-8"))
    if args.csv:
        data_handler.save_summary_csv(summary)
    return 0


def cmd_report(store: InventoryStore, args: argparse.Namespace) -> int:
    result = services.generate_report(store, args.format)
    if not result.success:
        return _report_failure(result)
    artifact = result.data
    settings.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    path = settings.OUTPUT_DIR / utils.generate_archive_filename(
        settings.SUMMARY_FILENAME_BASE, artifact.extension
    )
    path.write_bytes(artifact.content)
    logger.info(f"✅ Report saved to: {path}")
    if args.send:
        sent = services.send_report(store, args.format, artifact=artifact)
        if not sent.success:
            return _report_failure(sent)
    return 0


def cmd_archive(store: InventoryStore, args: argparse.Namespace) -> int:
    if args.reset:
        result = services.archive_and_reset(store, args.format)
    else:
        result = services.archive_report(store, args.format)
    if not result.success:
        return _report_failure(result)
    receipt = result.data["archive"] if args.reset else result.data
    logger.info(f"Archived as {utils.get_display_filename(receipt.filename)}: {receipt.url}")
    return 0


def cmd_reset(store: InventoryStore, args: argparse.Namespace) -> int:
    result = services.reset_all(store)
    outcome = result.data
    if outcome is not None:
        logger.info(f"Zeroed: {', '.join(outcome.succeeded) or '-'}")
    if not result.success:
        return _report_failure(result)
    return 0


def cmd_submit(store: InventoryStore, args: argparse.Namespace) -> int:
    target = parse_device(args.device)
    if isinstance(target, ConsolidatedDevice):
        logger.error(f"❌ {target.label} is calculated, it cannot receive readings.")
        return 2

    quantities = {}
    for pair in args.quantities:
        product_id, sep, quantity = pair.partition("=")
        if not sep:
            logger.error(f"❌ Expected PRODUCT=QUANTITY, got '{pair}'")
            return 2
        quantities[product_id.strip()] = quantity

    result = services.submit(store, target, quantities, args.reported_by)
    if not result.success:
        return _report_failure(result)
    return 0


def cmd_import(store: InventoryStore, args: argparse.Namespace) -> int:
    result = import_readings_csv(store, args.csv_path, args.reported_by)
    if not result.success:
        return _report_failure(result)
    logger.info(f"✅ Imported readings for {len(result.data)} device(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cleaning products inventory: readings, summary and reports."
    )
    parser.add_argument("--db", default=str(settings.DB_PATH), help="SQLite database file")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("summary", help="print the latest reading per device")
    p.add_argument("--csv", action="store_true", help="also save the summary as CSV")
    p.set_defaults(func=cmd_summary)

    formats = sorted(RENDERER_REGISTRY)

    p = sub.add_parser("report", help="render the report to the output folder")
    p.add_argument("--format", choices=formats, default=settings.REPORT_FORMAT)
    p.add_argument("--send", action="store_true", help="also post it to the webhook")
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("archive", help="store the report in the archive folder")
    p.add_argument("--format", choices=formats, default=settings.REPORT_FORMAT)
    p.add_argument("--reset", action="store_true", help="zero every device after archiving")
    p.set_defaults(func=cmd_archive)

    p = sub.add_parser("reset", help="append a zeroed reading for every device")
    p.set_defaults(func=cmd_reset)

    p = sub.add_parser("submit", help="record a reading: submit DEVICE product=qty ...")
    p.add_argument("device")
    p.add_argument("quantities", nargs="*", metavar="PRODUCT=QUANTITY")
    p.add_argument("--reported-by", default=settings.DEFAULT_REPORTER)
    p.set_defaults(func=cmd_submit)

    p = sub.add_parser("import", help="record readings from a CSV (device,productId,quantity)")
    p.add_argument("csv_path", type=Path)
    p.add_argument("--reported-by", default=settings.DEFAULT_REPORTER)
    p.set_defaults(func=cmd_import)

    return parser


def main(argv=None) -> int:
    setup_logger("cleaning_inventory")
    args = build_parser().parse_args(argv)
    try:
        store = InventoryStore(args.db)
    except StoreError as e:
        logger.error(f"❌ {e}")
        return 1
    with store:
        return args.func(store, args)


if __name__ == "__main__":
    sys.exit(main())
