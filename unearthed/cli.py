"""
Command line entry point.

    unearthed export find.yaml --photo ring.jpg --lang en
    unearthed inspect assets/Funnskjema-unlocked.pdf
    unearthed remember
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from shared.utils.config import settings
from shared.utils.helpers import serialize_for_json
from unearthed.core.engine import ExportEngine
from unearthed.core.exceptions import ExportException
from unearthed.core.types import COORD_SYSTEMS, SUPPORTED_LANGUAGES
from unearthed.form_filler.pdf_form_filler import inspect_form
from unearthed.storage.local_store import LocalStore


def load_record_file(path: str) -> Dict[str, Any]:
    """Read a find record from a YAML or JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def _print_json(data: Any) -> None:
    print(json.dumps(data, default=serialize_for_json, ensure_ascii=False, indent=2))


async def _export(args: argparse.Namespace) -> int:
    data = load_record_file(args.record)
    if args.photo:
        data["photos"] = list(data.get("photos") or []) + list(args.photo)

    store = LocalStore()
    if args.lang:
        store.set_language(args.lang)
        data["lang"] = args.lang
    if args.coord_system:
        store.set_coord_system(args.coord_system)

    async with ExportEngine(
        store=store,
        template_source=args.template,
        output_dir=args.output_dir,
    ) as engine:
        result = await engine.export(data, preferred_system=args.coord_system)

    _print_json(result.dict())
    if not result.success:
        print(f"Could not create the filled PDF: {result.error}", file=sys.stderr)
        return 1
    if result.location and result.location.utm32_fallback:
        print("Position is outside UTM zone 32; coordinates were written as WGS84.", file=sys.stderr)
    return 0


def _inspect(args: argparse.Namespace) -> int:
    try:
        info = inspect_form(Path(args.template).read_bytes())
    except (OSError, ExportException) as e:
        print(f"Cannot inspect {args.template}: {e}", file=sys.stderr)
        return 1
    _print_json(info)
    return 0


def _remember(args: argparse.Namespace) -> int:
    store = LocalStore()
    finder = store.remembered_finder()
    _print_json({
        "finder": finder,
        "lang": store.language(),
        "coord_system": store.coord_system(),
    })
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unearthed",
        description="Fill the archaeological find report form",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Export a find record to a filled PDF")
    export.add_argument("record", help="Find record (YAML or JSON)")
    export.add_argument("--photo", action="append", help="Photo file, repeatable")
    export.add_argument("--lang", choices=SUPPORTED_LANGUAGES, help="Summary page language")
    export.add_argument("--coord-system", choices=COORD_SYSTEMS, help="Preferred coordinate system")
    export.add_argument("--output-dir", default=None, help=f"Default: {settings.OUTPUT_DIR}")
    export.add_argument("--template", default=None, help=f"Path or URL. Default: {settings.TEMPLATE_PATH}")
    export.set_defaults(handler=_export)

    inspect = sub.add_parser("inspect", help="List the fields of a fillable PDF")
    inspect.add_argument("template")
    inspect.set_defaults(handler=_inspect)

    remember = sub.add_parser("remember", help="Show remembered finder and preferences")
    remember.set_defaults(handler=_remember)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "export":
        try:
            return asyncio.run(args.handler(args))
        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"Cannot read {args.record}: {e}", file=sys.stderr)
            return 1
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
