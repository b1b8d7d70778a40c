#!/usr/bin/env python3
"""
Debug a single raffle comment through the parser.

Shows every pass over the working buffer, the rules that matched, and the
final parsed result.

Usage:
    python scripts/debug_comment.py "3 randoms and spot 7 tabbed by fuzzy" --author bob
"""

import sys
import os
import json
import argparse

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from raffle.services.parser import CommentParser, PARSER_VERSION


def debug_comment(body: str, author: str):
    parser = CommentParser()
    debug = {}
    result = parser.parse(body, author, 'debug', _debug=debug)

    print("=" * 60)
    print(f"PARSER {PARSER_VERSION}")
    print("=" * 60)
    print(f"Author: {author}")
    print(f"Body:   {body!r}")

    print("\n" + "=" * 60)
    print("STAGES")
    print("=" * 60)
    for name, working in debug.get('stages', []):
        print(f"  {name:<24} {working!r}")

    print("\n" + "=" * 60)
    print("PATTERNS MATCHED")
    print("=" * 60)
    for name, count in debug.get('patterns_matched', {}).items():
        print(f"  {name:<24} x{count}")

    for warning in debug.get('warnings', []):
        print(f"\n⚠️  {warning}")

    print("\n" + "=" * 60)
    print("RESULT")
    print("=" * 60)
    print(json.dumps(result.model_dump(), indent=2))
    return result


def main():
    args_parser = argparse.ArgumentParser(description='Debug raffle comment parsing')
    args_parser.add_argument('body', help='Comment body to parse')
    args_parser.add_argument('--author', '-a', default='', help='Comment author')
    args = args_parser.parse_args()

    debug_comment(args.body, args.author)


if __name__ == "__main__":
    main()
