"""
Command-line interface for DOCX Composer.

Usage:
    docx-composer export state.json --output document.docx
    docx-composer export state.json --margins narrow --geometry geometry.json
    docx-composer paginate state.json --heights heights.json --output paginated.json
    docx-composer version
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape

from .config import MARGIN_PRESETS, ExportOptions, Margins, PageSetup
from .exceptions import ConfigurationError, DocumentModelError, DocxComposerError
from .export import DocumentExporter, FilePersistence, RenderedGeometry
from .layout import DocumentBreakApplier, DocumentMeasurementProvider, Paginator
from .models import RichDocument
from .utils.logger import LEVELS, configure_logging
from .version import __version__

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="docx-composer",
        description="DOCX Composer - paginate rich-text editor states and export them to DOCX",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  docx-composer export state.json --output out.docx
  docx-composer export state.json --margins wide --geometry geometry.json
  docx-composer paginate state.json --heights heights.json --output paged.json
  docx-composer version
        """,
    )
    parser.add_argument(
        "--log-level",
        choices=LEVELS,
        default="WARNING",
        help="Log level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    export_parser = subparsers.add_parser("export", help="Export an editor state to DOCX")
    export_parser.add_argument("input", help="Serialized editor state (JSON)")
    export_parser.add_argument(
        "-o", "--output",
        help="Output DOCX path (default: input name with .docx extension)",
    )
    export_parser.add_argument(
        "--margins",
        choices=sorted(MARGIN_PRESETS),
        default="normal",
        help="Page margin preset (default: normal)",
    )
    export_parser.add_argument(
        "--geometry",
        help="Rendered geometry snapshot (JSON) with image boxes, table widths and defaults",
    )
    export_parser.add_argument(
        "--log-level",
        choices=LEVELS,
        default=argparse.SUPPRESS,
        help="Log level for this command",
    )

    paginate_parser = subparsers.add_parser("paginate", help="Insert page breaks from measured heights")
    paginate_parser.add_argument("input", help="Serialized editor state (JSON)")
    paginate_parser.add_argument(
        "--heights",
        required=True,
        help="Measured heights (JSON): {node key: px} or a list of px in block order",
    )
    paginate_parser.add_argument(
        "-o", "--output",
        help="Output state path (default: print to stdout)",
    )
    paginate_parser.add_argument(
        "--margins",
        choices=sorted(MARGIN_PRESETS),
        default="normal",
        help="Page margin preset (default: normal)",
    )

    subparsers.add_parser("version", help="Show version information")

    return parser


def _read_json(path: str, what: str) -> Any:
    source = Path(path)
    if not source.exists():
        raise ConfigurationError(f"{what} not found", details=str(source))
    try:
        return json.loads(source.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read {what.lower()}", details=f"{source}: {e}") from e


def _load_document(path: str) -> RichDocument:
    data = _read_json(path, "Editor state")
    if not isinstance(data, dict):
        raise DocumentModelError("Editor state must be a JSON object", details=path)
    return RichDocument.from_dict(data)


def _heights_by_key(document: RichDocument, data: Any) -> Dict[str, float]:
    if isinstance(data, dict):
        try:
            return {str(key): float(value) for key, value in data.items()}
        except (TypeError, ValueError) as e:
            raise ConfigurationError("Heights must be numbers", details=str(e)) from e
    if isinstance(data, list):
        content: List[str] = [node.key for node in document if not node.is_page_break]
        if len(data) != len(content):
            raise ConfigurationError(
                "Height list does not match the document",
                details=f"{len(data)} heights for {len(content)} blocks",
            )
        try:
            return {key: float(value) for key, value in zip(content, data)}
        except (TypeError, ValueError) as e:
            raise ConfigurationError("Heights must be numbers", details=str(e)) from e
    raise ConfigurationError("Heights must be a JSON object or list", details=type(data).__name__)


def cmd_export(args) -> int:
    """Handle export command."""
    document = _load_document(args.input)
    output_path = Path(args.output) if args.output else Path(args.input).with_suffix(".docx")

    geometry = None
    if args.geometry:
        geometry = RenderedGeometry.from_dict(_read_json(args.geometry, "Geometry"))

    options = ExportOptions(filename=output_path.name)
    exporter = DocumentExporter(
        document,
        page_setup=PageSetup(margins=Margins.preset(args.margins)),
        geometry=geometry,
        options=options,
    )
    saved = exporter.save(FilePersistence(output_path.parent))
    console.print(f"[green]Saved:[/green] {escape(str(saved))}")
    return 0


def cmd_paginate(args) -> int:
    """Handle paginate command."""
    document = _load_document(args.input)
    heights = _heights_by_key(document, _read_json(args.heights, "Heights"))

    paginator = Paginator(
        DocumentMeasurementProvider(document, heights),
        DocumentBreakApplier(document),
        page_setup=PageSetup(margins=Margins.preset(args.margins)),
    )
    # Every successful run inserts at least one marker, and each box can be
    # preceded by at most one, so this terminates
    while paginator.run():
        pass

    pages = paginator.pages()
    result = document.to_json()
    if args.output:
        Path(args.output).write_text(result, encoding="utf-8")
        console.print(
            f"[green]Saved:[/green] {args.output} "
            f"({paginator.breaks_inserted} breaks inserted, {len(pages)} pages)"
        )
    else:
        sys.stdout.write(result + "\n")
    return 0


def cmd_version(args=None) -> int:
    """Handle version command."""
    print(f"DOCX Composer v{__version__}")
    print("Paginated rich-text documents exported to DOCX")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level, console=console)

    commands = {
        "export": cmd_export,
        "paginate": cmd_paginate,
        "version": cmd_version,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args)
    except DocxComposerError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
        logger.debug("Command failed", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
