"""
Render an exported character sheet (or a blank one) to printable HTML.

Usage:
    python tools/render_sheet.py character-sheet.json
    python tools/render_sheet.py --blank -o exports/blank_sheet.html
"""
import argparse
import json
import logging
from pathlib import Path
import sys

# Allow importing the engine modules when running from the tools directory
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from core import default_form_schema, load_form_schema, load_point_caps  # noqa: E402
from sheet_render import SheetRenderer  # noqa: E402
from validation import SheetValidator  # noqa: E402


logger = logging.getLogger("render_sheet")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Render a character sheet to HTML")
    parser.add_argument("sheet", nargs="?", help="exported sheet JSON file")
    parser.add_argument("--blank", action="store_true", help="render a blank sheet")
    parser.add_argument("-o", "--output", help="output HTML path")
    parser.add_argument("--caps", default=str(ROOT_DIR / "data" / "point_caps.json"),
                        help="point caps JSON file")
    parser.add_argument("--form", help="form schema JSON file (default: built-in form)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if not args.blank and not args.sheet:
        parser.error("give a sheet file or --blank")

    caps = load_point_caps(args.caps) if Path(args.caps).exists() else {}
    if args.form:
        try:
            schema = load_form_schema(args.form).with_caps(caps)
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.error("Could not read form %s: %s", args.form, e)
            return 1
    else:
        schema = default_form_schema(caps)
    renderer = SheetRenderer(schema)

    if args.blank:
        snapshot = renderer.codec.blank_snapshot()
        default_name = "blank_sheet.html"
    else:
        source = Path(args.sheet)
        try:
            with source.open("r", encoding="utf-8") as f:
                snapshot = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Could not read %s: %s", source, e)
            return 1
        result = SheetValidator(schema).validate_snapshot(snapshot)
        for message in result.errors:
            logger.warning("%s: %s", source.name, message)
        for message in result.warnings:
            logger.info("%s: %s", source.name, message)
        default_name = f"{source.stem}.html"

    exports_dir = ROOT_DIR / "exports"
    output_path = Path(args.output) if args.output else exports_dir / default_name
    output_path.parent.mkdir(parents=True, exist_ok=True)
    renderer.save_html(snapshot, output_path)

    logger.info("Rendered sheet at %s", output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
