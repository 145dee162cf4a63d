#!/usr/bin/env python3
"""CLI entrypoint for the incident notes to MDX converter."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, cast

from incident_kb.mdx_converter import converter, slug, sources, tagger, validator
from incident_kb.mdx_converter.frontmatter import extract_frontmatter

logger = logging.getLogger("incident_kb.mdx_converter.cli")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def read_source(value: str, args: argparse.Namespace) -> str:
    if value == "-":
        return sys.stdin.read()
    path = Path(value).expanduser().resolve()
    if not path.exists():
        raise SystemExit(f"Notes file not found: {path}")
    pdf_backends = parse_backend_list(getattr(args, "pdf_backends", None))
    try:
        notes = sources.load_notes(
            path,
            min_pdf_chars=getattr(args, "min_pdf_chars", None),
            pdf_backends=pdf_backends,
        )
    except sources.UnsupportedSourceError as exc:
        raise SystemExit(str(exc)) from exc
    if notes.pdf_meta is not None:
        logger.debug("PDF extraction: %s", json.dumps(notes.pdf_meta))
        if not notes.text.strip():
            min_chars = sources.resolve_min_pdf_chars(getattr(args, "min_pdf_chars", None))
            raise SystemExit(
                f"No usable text extracted from {path}: best result had "
                f"{notes.pdf_meta['chars']} character(s), below the minimum of {min_chars} "
                "(lower it with --min-pdf-chars or INCIDENT_MDX_MIN_PDF_CHARS)"
            )
    return notes.text


def load_metadata(value: str | None) -> dict[str, Any] | None:
    if not value:
        return None
    path = Path(value).expanduser().resolve()
    if not path.exists():
        raise SystemExit(f"Metadata file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise SystemExit("Metadata file must contain a JSON object")
    return cast(dict[str, Any], data)


def parse_backend_list(value: str | None) -> list[str] | None:
    if not value:
        return None
    parts = [entry.strip() for entry in value.split(",") if entry.strip()]
    return parts or None


def output_name(document: str) -> str:
    metadata, _ = extract_frontmatter(document)
    title = metadata.get("title") if metadata else None
    return slug.generate_filename(title if isinstance(title, str) else "")


def command_convert(args: argparse.Namespace) -> None:
    raw_text = read_source(args.source, args)
    try:
        result = converter.convert(
            raw_text,
            title=args.title,
            category=args.category,
            severity=args.severity,
            metadata=load_metadata(args.metadata),
        )
    except converter.InvalidInputError as exc:
        raise SystemExit(str(exc)) from exc
    for warning in result.warnings:
        logger.warning(warning)
    if args.output_dir:
        output_dir = Path(args.output_dir).expanduser().resolve()
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / output_name(result.document)
        output_path.write_text(result.document, encoding="utf-8")
        logger.info("Wrote %s (%d characters)", output_path, len(result.document))
        return
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        sys.stdout.write(result.document)


def command_validate(args: argparse.Namespace) -> None:
    path = Path(args.file).expanduser().resolve()
    if not path.exists():
        raise SystemExit(f"MDX file not found: {path}")
    report = validator.validate_mdx(path.read_text(encoding="utf-8"))
    for error in report.errors:
        print(f"error: {error}")
    for warning in report.warnings:
        print(f"warning: {warning}")
    if not report.is_valid:
        raise SystemExit(1)
    print("OK")


def command_tags(args: argparse.Namespace) -> None:
    print(", ".join(tagger.extract_tags(read_source(args.source, args))))


def add_source_arguments(parser_obj: argparse.ArgumentParser) -> None:
    parser_obj.add_argument(
        "source", help="Notes file (.txt, .md, .html, .docx, .pdf) or - for stdin"
    )
    parser_obj.add_argument(
        "--pdf-backends",
        help="Comma-separated PDF extraction backend order (overrides INCIDENT_MDX_PDF_BACKENDS)",
    )
    parser_obj.add_argument(
        "--min-pdf-chars",
        type=int,
        help="Minimum characters required from a PDF (overrides INCIDENT_MDX_MIN_PDF_CHARS)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(description="Convert incident notes to MDX")
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser_obj.add_subparsers(dest="command")

    convert_parser = subparsers.add_parser("convert", help="Convert notes into an MDX document")
    add_source_arguments(convert_parser)
    convert_parser.add_argument("--title", help="Document title (derived from Issue if omitted)")
    convert_parser.add_argument("--category", help="Document category")
    convert_parser.add_argument("--severity", help="Severity, only written when supplied")
    convert_parser.add_argument("--metadata", help="JSON file with frontmatter used verbatim")
    convert_parser.add_argument("--output-dir", help="Write <slug>.mdx into this directory")
    convert_parser.add_argument(
        "--json", action="store_true", help="Print the mdx, tags and warnings as JSON"
    )
    convert_parser.set_defaults(func=command_convert)

    validate_parser = subparsers.add_parser("validate", help="Check an MDX document")
    validate_parser.add_argument("file", help="MDX file to check")
    validate_parser.set_defaults(func=command_validate)

    tags_parser = subparsers.add_parser("tags", help="Print tags detected in notes")
    add_source_arguments(tags_parser)
    tags_parser.set_defaults(func=command_tags)

    return parser_obj


def main(argv: list[str] | None = None) -> None:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    if not getattr(args, "command", None):
        parser_obj.print_help()
        return
    configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
