#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import os
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from moji.errors import AlphabetError
from moji.graphemes import is_standalone_grapheme
from moji.runtime import log_event

MAIN_BITS = 11
MAIN_SIZE = 1 << MAIN_BITS
TAIL_MIN_SIZE = 8

# Standalone skin-tone modifiers. Each one merges into whatever grapheme
# cluster precedes it, so a symbol boundary in front of it cannot be found.
FORBIDDEN_SYMBOLS = frozenset(chr(cp) for cp in range(0x1F3FB, 0x1F400))

# emoji-test.txt statuses that are not standalone emoji.
SKIP_STATUSES = frozenset(("component", "minimally-qualified", "unqualified"))

BUNDLED_ALPHABET_FILE = os.path.join(os.path.dirname(__file__), "alphabet.txt")

_DEFAULT_ALPHABET: Optional["Alphabet"] = None
_DEFAULT_ALPHABET_FILE: Optional[str] = None
_DEFAULT_LOCK = threading.Lock()


def symbol_to_hex(symbol: str) -> str:
    return " ".join(f"{ord(ch):04X}" for ch in symbol)


def symbol_from_hex(field: str) -> str:
    try:
        return "".join(chr(int(cp, 16)) for cp in field.split())
    except (ValueError, OverflowError) as ex:
        raise AlphabetError(f"invalid code point field: {field!r}") from ex


def parse_emoji_data(lines: Iterable[str]) -> List[str]:
    """Extract alphabet symbols from a Unicode emoji data file.

    Two layouts are understood:
    - emoji-sequences.txt: `code points ; type ; description`, where the code
      point field is a single code point, an `A..B` range or a sequence
    - emoji-test.txt: `code points ; status # comment`; only fully-qualified
      rows are kept

    Rows are taken in reverse declaration order (a range still expands
    upwards). Standalone skin-tone modifiers and repeats are dropped.
    """
    out: List[str] = []
    seen = set()
    for raw in reversed(list(lines)):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        fields = [f.strip() for f in line.split(";")]
        if len(fields) > 1 and fields[1] in SKIP_STATUSES:
            continue
        cps = fields[0]
        if ".." in cps:
            start_s, end_s = cps.split("..", 1)
            try:
                start = int(start_s, 16)
                end = int(end_s, 16)
            except ValueError as ex:
                raise AlphabetError(f"invalid code point range: {cps!r}") from ex
            if start > end or end > 0x10FFFF:
                raise AlphabetError(f"invalid code point range: {cps!r}")
            symbols = [chr(cp) for cp in range(start, end + 1)]
        else:
            symbols = [symbol_from_hex(cps)]
        for sym in symbols:
            if not sym or sym in FORBIDDEN_SYMBOLS or sym in seen:
                continue
            seen.add(sym)
            out.append(sym)
    return out


def parse_alphabet_lines(lines: Iterable[str]) -> List[str]:
    """Parse the alphabet file format: one symbol per line as hex code points.

    Blank lines and `#` comments are skipped. Line order is index order.
    """
    symbols: List[str] = []
    for lineno, raw in enumerate(lines, 1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        try:
            symbols.append(symbol_from_hex(line))
        except AlphabetError as ex:
            raise AlphabetError(f"line {lineno}: {ex}") from ex
    return symbols


def format_alphabet_lines(symbols: Sequence[str], header: Sequence[str] = ()) -> List[str]:
    out = [f"# {h}" if h else "#" for h in header]
    if out:
        out.append("")
    for sym in symbols:
        out.append(f"{symbol_to_hex(sym)}  # {sym}")
    return out


def _index_symbols(symbols: Tuple[str, ...], table: str) -> Dict[str, int]:
    index: Dict[str, int] = {}
    for i, sym in enumerate(symbols):
        if not isinstance(sym, str) or not sym:
            raise AlphabetError(f"{table} table: empty symbol at index {i}")
        if sym in FORBIDDEN_SYMBOLS:
            raise AlphabetError(f"{table} table: standalone modifier {symbol_to_hex(sym)} at index {i}")
        if not is_standalone_grapheme(sym):
            raise AlphabetError(f"{table} table: {symbol_to_hex(sym)} at index {i} is not a standalone grapheme cluster")
        prev = index.get(sym)
        if prev is not None:
            raise AlphabetError(f"{table} table: {symbol_to_hex(sym)} at both index {prev} and {i}")
        index[sym] = i
    return index


class Alphabet:
    """Read-only symbol tables for the codec.

    The main table maps the 2048 eleven-bit values to symbols; the tail table
    holds at least 8 more symbols for a final 1..3 bit remainder. Both
    directions of both tables are built once here and checked for size,
    uniqueness, overlap and symbols that could merge with a neighbour, so
    lookups by a valid index cannot miss later.
    Instances are never mutated and may be shared between threads.
    """

    def __init__(self, main: Sequence[str], tail: Sequence[str], source: str = "") -> None:
        main_t = tuple(main)
        tail_t = tuple(tail)
        if len(main_t) != MAIN_SIZE:
            raise AlphabetError(f"main table needs exactly {MAIN_SIZE} symbols, got {len(main_t)}")
        if len(tail_t) < TAIL_MIN_SIZE:
            raise AlphabetError(f"tail table needs at least {TAIL_MIN_SIZE} symbols, got {len(tail_t)}")
        main_index = _index_symbols(main_t, "main")
        tail_index = _index_symbols(tail_t, "tail")
        shared = sorted(main_index.keys() & tail_index.keys())
        if shared:
            raise AlphabetError(f"symbol {symbol_to_hex(shared[0])} is in both main and tail tables")
        self._main = main_t
        self._tail = tail_t
        self._main_index = main_index
        self._tail_index = tail_index
        self.source = source

    @classmethod
    def from_symbols(cls, symbols: Iterable[str], source: str = "") -> "Alphabet":
        """Split an ordered symbol list: first 2048 are main, the rest tail (re-indexed from 0)."""
        seq = list(symbols)
        return cls(seq[:MAIN_SIZE], seq[MAIN_SIZE:], source=source)

    @classmethod
    def from_file(cls, path: str) -> "Alphabet":
        with open(path, "r", encoding="utf-8") as f:
            symbols = parse_alphabet_lines(f)
        return cls.from_symbols(symbols, source=path)

    @classmethod
    def from_emoji_data(cls, path: str) -> "Alphabet":
        with open(path, "r", encoding="utf-8") as f:
            symbols = parse_emoji_data(f)
        return cls.from_symbols(symbols, source=path)

    @property
    def main_size(self) -> int:
        return len(self._main)

    @property
    def tail_size(self) -> int:
        return len(self._tail)

    def main_symbol_of(self, index: int) -> str:
        return self._main[index]

    def main_index_of(self, symbol: str) -> Optional[int]:
        return self._main_index.get(symbol)

    def tail_symbol_of(self, index: int) -> str:
        return self._tail[index]

    def tail_index_of(self, symbol: str) -> Optional[int]:
        return self._tail_index.get(symbol)

    def main_symbols(self) -> Tuple[str, ...]:
        return self._main

    def tail_symbols(self) -> Tuple[str, ...]:
        return self._tail

    def __repr__(self) -> str:
        return f"Alphabet(main={self.main_size}, tail={self.tail_size}, source={self.source!r})"


def load_alphabet(path: Optional[str] = None) -> Alphabet:
    """Load an alphabet file (bundled one by default) and log the load."""
    alphabet = Alphabet.from_file(path or BUNDLED_ALPHABET_FILE)
    log_event(f"ALPHABET: {alphabet.source} main={alphabet.main_size} tail={alphabet.tail_size}")
    return alphabet


def set_default_alphabet_file(path: Optional[str]) -> None:
    """Point the default alphabet at another file; it is reloaded on next use."""
    global _DEFAULT_ALPHABET, _DEFAULT_ALPHABET_FILE
    with _DEFAULT_LOCK:
        _DEFAULT_ALPHABET_FILE = path or None
        _DEFAULT_ALPHABET = None


def default_alphabet() -> Alphabet:
    global _DEFAULT_ALPHABET
    alphabet = _DEFAULT_ALPHABET
    if alphabet is not None:
        return alphabet
    with _DEFAULT_LOCK:
        if _DEFAULT_ALPHABET is None:
            _DEFAULT_ALPHABET = load_alphabet(_DEFAULT_ALPHABET_FILE)
        return _DEFAULT_ALPHABET
