# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SitePatch CLI: replay streams and apply edits against files on disk.

Usage:
    python -m sitepatch.cli extract response.txt --flavor files --chunk-size 16
    python -m sitepatch.cli apply-edits index.html edits.txt --output out.html
    python -m sitepatch.cli apply-dom index.html ops.txt
    python -m sitepatch.cli dedup ./site --write

Results go to stdout as JSON; logs go to stderr.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from sitepatch import __version__
from sitepatch.blocks import assign_block_ids
from sitepatch.components import extract_components
from sitepatch.dom_operations import apply_dom_operations
from sitepatch.errors import SitePatchError
from sitepatch.extraction import EXTRACTORS, create_extractor
from sitepatch.files import is_component_file, is_page_file
from sitepatch.logging_config import bind_stream, configure
from sitepatch.search_replace import apply_edit_operations

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2


def _read(path: str) -> str:
    file = Path(path)
    if not file.is_file():
        raise SitePatchError(f"{path}: no such file")
    return file.read_text(encoding="utf-8")


def _print_json(data: object) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def _jsonable(payload: object) -> object:
    if isinstance(payload, list):
        return [dataclasses.asdict(item) if dataclasses.is_dataclass(item) else item for item in payload]
    return payload


def _feed(flavor: str, text: str, chunk_size: int):
    extractor = create_extractor(flavor)
    result = extractor.parse("")
    for start in range(0, len(text), chunk_size):
        result = extractor.parse(text[start : start + chunk_size])
    return result


def _operations_from_stream(flavor: str, path: str):
    result = _feed(flavor, _read(path), chunk_size=4096)
    if not result.has_open_tag:
        tag = EXTRACTORS[flavor].tag
        raise SitePatchError(f"{path}: no <{tag}> region found")
    if not result.is_complete:
        logger.warning("%s: region never closed; applying the %d closed operation(s)", path, len(result.payload))
    return result.payload


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_extract(args: argparse.Namespace) -> int:
    """Replay a saved model response through an extractor."""
    if args.chunk_size < 1:
        raise SitePatchError("--chunk-size must be >= 1")
    bind_stream(source=args.file, flavor=args.flavor)
    result = _feed(args.flavor, _read(args.file), args.chunk_size)
    _print_json(
        {
            "preamble": result.preamble,
            "is_complete": result.is_complete,
            "has_open_tag": result.has_open_tag,
            "attributes": result.attributes,
            "payload": _jsonable(result.payload),
        }
    )
    return EXIT_OK


def cmd_apply_edits(args: argparse.Namespace) -> int:
    """Apply an <editOperations> stream to one file."""
    bind_stream(target=args.target)
    source = _read(args.target)
    operations = _operations_from_stream("edits", args.edits)
    result = apply_edit_operations(source, operations)
    if args.output and result.applied_count:
        Path(args.output).write_text(result.text, encoding="utf-8")
    _print_json(result.to_dict())
    if result.success is True:
        return EXIT_OK
    return EXIT_PARTIAL if result.success == "partial" else EXIT_FAILED


def cmd_apply_dom(args: argparse.Namespace) -> int:
    """Apply a <domOperations> stream to one file."""
    bind_stream(target=args.target)
    source = _read(args.target)
    operations = _operations_from_stream("dom", args.ops)
    result = apply_dom_operations(source, operations)
    if args.output and result.applied_count:
        Path(args.output).write_text(result.html, encoding="utf-8")
    _print_json(result.to_dict())
    if result.all_succeeded:
        return EXIT_OK
    return EXIT_PARTIAL if result.applied_count else EXIT_FAILED


def cmd_dedup(args: argparse.Namespace) -> int:
    """Assign block ids and extract shared components for a site directory."""
    root = Path(args.dir)
    if not root.is_dir():
        raise SitePatchError(f"{args.dir}: not a directory")

    files = {p.name: p.read_text(encoding="utf-8") for p in sorted(root.glob("*.html"))}
    components_dir = root / "_components"
    if components_dir.is_dir():
        for p in sorted(components_dir.glob("*.html")):
            files[f"_components/{p.name}"] = p.read_text(encoding="utf-8")

    assignment = assign_block_ids(files)
    extraction = extract_components(assignment.files)

    changed = sorted(path for path, content in extraction.files.items() if files.get(path) != content)
    if args.write:
        for path in changed:
            target = root / path
            if is_component_file(path):
                target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(extraction.files[path], encoding="utf-8")

    _print_json(
        {
            "pages": sum(1 for p in files if is_page_file(p)),
            "assigned": assignment.assigned,
            "components": [c.filename for c in extraction.components],
            "changed": changed,
            "written": bool(args.write),
        }
    )
    return EXIT_OK


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SitePatch: streaming artifact extraction and patch application",
        prog="python -m sitepatch.cli",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING", help="Log level for sitepatch loggers (default: WARNING)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Replay a saved model response through an extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m sitepatch.cli extract response.txt\n"
            "  python -m sitepatch.cli extract response.txt --flavor edits --chunk-size 7\n"
        ),
    )
    extract_parser.add_argument("file", help="Text file holding the raw model output")
    extract_parser.add_argument("--flavor", choices=sorted(EXTRACTORS), default="files", help="Extractor flavor")
    extract_parser.add_argument("--chunk-size", type=int, default=64, help="Characters per simulated chunk")

    edits_parser = subparsers.add_parser("apply-edits", help="Apply an <editOperations> stream to a file")
    edits_parser.add_argument("target", help="File to edit")
    edits_parser.add_argument("edits", help="File holding the <editOperations> region")
    edits_parser.add_argument("--output", "-o", help="Write the edited text here")

    dom_parser = subparsers.add_parser("apply-dom", help="Apply a <domOperations> stream to a file")
    dom_parser.add_argument("target", help="HTML file to edit")
    dom_parser.add_argument("ops", help="File holding the <domOperations> region")
    dom_parser.add_argument("--output", "-o", help="Write the edited HTML here")

    dedup_parser = subparsers.add_parser("dedup", help="Assign block ids and extract shared components")
    dedup_parser.add_argument("dir", help="Site directory holding the .html pages")
    dedup_parser.add_argument("--write", action="store_true", help="Write changed files back to the directory")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure(json_output=args.json_logs, level=args.log_level)

    commands = {
        "extract": cmd_extract,
        "apply-edits": cmd_apply_edits,
        "apply-dom": cmd_apply_dom,
        "dedup": cmd_dedup,
    }

    try:
        code = commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except (SitePatchError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILED)
    sys.exit(code)


if __name__ == "__main__":
    main()
