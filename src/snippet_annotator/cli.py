#!/usr/bin/env python3
"""
Snippet PDF Annotator - Command Line Interface
Locates instruction snippets in a PDF and draws highlights, underlines and
comment callouts for the ones it finds
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .models import InvalidSpecError, MatchOptions
from .pdf_processor.annotation_mapper import log_match_event
from .pdf_processor.pdf_annotator import annotate_pdf_file
from .pdf_processor.text_extractor import extract_pdf_file, find_text_in_pages, format_for_prompt
from .proposals import MODEL_SYSTEM_PROMPT, build_model_prompt, load_instructions, parse_model_response
from .utils.file_utils import ensure_parent_directory, read_json_file, safe_read_text_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Snippet PDF Annotator CLI")
    parser.add_argument("--pdf-file", required=True, help="Path to PDF file")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--instructions", help="JSON file with annotation instructions")
    source.add_argument("--model-response", help="Text file with a model's proposed annotations (JSON array)")
    source.add_argument("--print-prompt", metavar="REQUEST",
                        help="Print the model prompt for this request and the PDF text, then exit")
    source.add_argument("--find", metavar="TEXT",
                        help="List the pages whose text contains TEXT verbatim, then exit")
    parser.add_argument("--output", help="Output PDF path (default: <input>_annotated.pdf)")
    parser.add_argument("--export-json", help="Export annotation results to JSON file")
    parser.add_argument("--tolerance", type=float, default=0.15,
                        help="Fuzzy match tolerance as a fraction of snippet length (0 disables)")
    parser.add_argument("--case-sensitive", action="store_true", help="Case-sensitive matching")
    parser.add_argument("--all-pages", action="store_true",
                        help="Search every page and keep the best match instead of the first")
    parser.add_argument("--page", type=int,
                        help="Only search this page (1-based); with --print-prompt, only include this page")
    parser.add_argument("--keep-not-found-warnings", action="store_true",
                        help="Report instructions that were not found as warnings")
    parser.add_argument("--max-chars-per-page", type=int, default=1000,
                        help="Page text limit used with --print-prompt")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    return parser


def main(argv=None):
    """Command line interface main function"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    if not Path(args.pdf_file).exists():
        print(f"Error: PDF file does not exist: {args.pdf_file}")
        sys.exit(1)

    if args.find:
        document = extract_pdf_file(args.pdf_file)
        found = find_text_in_pages(document.pages, args.find, args.case_sensitive)
        if not found:
            print(f"Text not found: \"{args.find}\"")
            sys.exit(1)
        print(f"Found on page(s): {', '.join(str(n) for n in found)}")
        sys.exit(0)

    if args.print_prompt:
        try:
            document = extract_pdf_file(args.pdf_file, page_number=args.page)
        except ValueError as e:
            print(f"Error: {e}")
            sys.exit(1)
        print(MODEL_SYSTEM_PROMPT)
        print()
        print(build_model_prompt(
            format_for_prompt(document, max_chars_per_page=args.max_chars_per_page),
            args.print_prompt,
        ))
        sys.exit(0)

    try:
        options = MatchOptions(
            tolerance_fraction=args.tolerance,
            case_sensitive=args.case_sensitive,
            first_match_only=not args.all_pages,
            restrict_to_page=args.page,
            skip_not_found=not args.keep_not_found_warnings,
        )
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        if args.instructions:
            specs = load_instructions(read_json_file(args.instructions))
        else:
            total_pages = extract_pdf_file(args.pdf_file).total_pages
            specs = parse_model_response(safe_read_text_file(args.model_response), total_pages)
    except (OSError, ValueError) as e:
        # InvalidSpecError and JSON errors are ValueErrors too
        kind = "instructions" if isinstance(e, InvalidSpecError) else "input"
        print(f"Error reading {kind}: {e}")
        sys.exit(1)

    if not specs:
        print("No annotation instructions found. Exiting.")
        sys.exit(0)

    print(f"Processing {len(specs)} annotation instructions for: {Path(args.pdf_file).name}")

    if args.output and not ensure_parent_directory(args.output):
        sys.exit(1)

    try:
        report = annotate_pdf_file(
            args.pdf_file,
            specs,
            args.output,
            options,
            event_sink=log_match_event if args.verbose else None,
        )
    except Exception as e:
        print(f"Error creating annotated PDF: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    for index, result in enumerate(report.results):
        if result.is_ok:
            print(f"  ✓ [{index}] {result.spec.kind.value} on page {result.rect.page_number} "
                  f"via {result.strategy.value}")
        else:
            print(f"  ✗ [{index}] {result.spec.kind.value}: {result.error}")

    for warning in report.warnings:
        print(f"Warning: {warning}")

    if args.export_json:
        try:
            ensure_parent_directory(args.export_json)
            with open(args.export_json, 'w', encoding='utf-8') as f:
                json.dump(report.to_dict(), f, indent=2, default=str)
            print(f"Results exported to: {args.export_json}")
        except OSError as e:
            print(f"Error exporting results: {e}")

    if report.success and report.output_path:
        print(f"✅ Success! Annotated PDF saved to: {report.output_path}")
        print(f"   📊 Applied {report.applied_count} of {len(report.results)} annotations")
    else:
        print("❌ No annotations could be applied")
        sys.exit(1)


if __name__ == "__main__":
    main()
