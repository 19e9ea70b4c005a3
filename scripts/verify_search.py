#!/usr/bin/env python3
"""Verification script for page search and index generation.

Usage:
    python scripts/verify_search.py <pdf_path> <query> [--pages N] [--index]

Prints the match rectangles per page and optionally the outline index for
manual comparison against a viewer.
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pdf_layout_server.layout import IndexNode, OperationFailedError, open_document


def print_index(node: IndexNode, depth: int = 0) -> None:
    for child in node.children:
        link = child.link
        if link is None:
            target = ""
        elif link.uri is not None:
            target = f" -> {link.uri}"
        else:
            target = f" -> page {link.page_number + 1}"
        print(f"{'  ' * depth}- {child.title}{target}")
        print_index(child, depth + 1)


def main():
    parser = argparse.ArgumentParser(description="Verify page search results")
    parser.add_argument("pdf_path", help="Path to PDF file")
    parser.add_argument("query", help="Text to search for")
    parser.add_argument(
        "--pages", type=int, default=5, help="Number of pages to search (default: 5)"
    )
    parser.add_argument(
        "--index", action="store_true", help="Also print the outline index"
    )
    args = parser.parse_args()

    pdf_path = Path(args.pdf_path)
    if not pdf_path.exists():
        print(f"Error: File not found: {pdf_path}")
        sys.exit(1)

    print(f"Searching: {pdf_path} for {args.query!r}")
    print("=" * 80)

    with open_document(pdf_path) as document:
        total = 0
        for index in range(min(args.pages, document.page_count)):
            rectangles = document.page(index).search(args.query)
            if not rectangles:
                continue
            total += len(rectangles)
            print(f"\n--- Page {index + 1}: {len(rectangles)} match(es) ---")
            for r in rectangles:
                print(f"  ({r.x1:.1f}, {r.y1:.1f}) - ({r.x2:.1f}, {r.y2:.1f})")

        print(f"\nTotal matches: {total}")

        if args.index:
            print("\n" + "=" * 80)
            try:
                print_index(document.index())
            except OperationFailedError as e:
                print(f"No index: {e}")

    print("\n" + "=" * 80)
    print("Search complete.")


if __name__ == "__main__":
    main()
