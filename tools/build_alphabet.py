#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Build the moji_codec alphabet file from a Unicode emoji data file.

Input is emoji-sequences.txt or emoji-test.txt from https://unicode.org/Public/emoji/.
The codec never reads those files at runtime; it only loads the generated
alphabet (one symbol per line as hex code points).

Usage:
  python tools/build_alphabet.py --out moji/alphabet.txt emoji-test.txt
  python tools/build_alphabet.py --check
"""

from __future__ import annotations

import argparse
import os
import re
import sys
from pathlib import Path
from typing import List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from moji.alphabet import MAIN_SIZE, Alphabet, format_alphabet_lines, parse_emoji_data  # noqa: E402
from moji.errors import AlphabetError  # noqa: E402

VERSION_RE = re.compile(r"^#\s*Version:\s*(\S+)")


def _header(source_path: str, lines: List[str]) -> List[str]:
    version = "unknown"
    for line in lines:
        m = VERSION_RE.match(line)
        if m:
            version = m.group(1)
            break
    source = f"Source: {os.path.basename(source_path)}, Unicode Emoji {version}"
    if any("; fully-qualified" in line for line in lines):
        source += " (fully-qualified rows only)"
    return [
        "Alphabet for moji_codec, generated by tools/build_alphabet.py.",
        source + ".",
        "Order: reverse declaration order, standalone skin-tone modifiers removed.",
        "Format: one symbol per line as hex code points; text after '#' is ignored.",
        f"The first {MAIN_SIZE} symbols form the main table, the rest form the tail table.",
    ]


def _check(path: str) -> int:
    try:
        alphabet = Alphabet.from_file(path)
    except (OSError, AlphabetError) as ex:
        print(f"FAIL: {path}: {ex}")
        return 1
    print(f"OK: {path} main={alphabet.main_size} tail={alphabet.tail_size}")
    return 0


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument(
        "--out",
        default=str(ROOT / "moji" / "alphabet.txt"),
        help="Output alphabet file (default: moji/alphabet.txt)",
    )
    ap.add_argument("--check", action="store_true", help="Validate the --out file and exit.")
    ap.add_argument("source", nargs="?", help="emoji-sequences.txt or emoji-test.txt")
    args = ap.parse_args()

    out_path = str(args.out)
    if args.check:
        return _check(out_path)
    if not args.source:
        raise SystemExit("source data file is required (or use --check)")

    with open(args.source, "r", encoding="utf-8") as f:
        lines = f.read().splitlines()
    symbols = parse_emoji_data(lines)
    try:
        alphabet = Alphabet.from_symbols(symbols, source=args.source)
    except AlphabetError as ex:
        raise SystemExit(f"unusable emoji data: {ex}")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    tmp = out_path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        f.write("\n".join(format_alphabet_lines(symbols, header=_header(args.source, lines))) + "\n")
    os.replace(tmp, out_path)

    print(f"Wrote {out_path}: main={alphabet.main_size} tail={alphabet.tail_size}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
