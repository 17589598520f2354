#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Grapheme cluster segmentation for symbol strings.

Symbols are emoji, often several code points long (ZWJ sequences, skin tones,
keycaps, flags), so text is cut at Unicode extended grapheme cluster
boundaries (UAX #29, `\\X` in the `regex` module) rather than per code point.
"""

from __future__ import annotations

import codecs
from collections import deque
from typing import BinaryIO, Deque, Iterator, Optional

import regex

from moji.errors import InvalidDataError

_GRAPHEME_RE = regex.compile(r"\X")
_LONE_REGIONAL_INDICATOR_RE = regex.compile("[\U0001F1E6-\U0001F1FF]")


def iter_graphemes(text: str) -> Iterator[str]:
    for m in _GRAPHEME_RE.finditer(text):
        yield m.group()


def count_graphemes(text: str) -> int:
    return sum(1 for _ in _GRAPHEME_RE.finditer(text))


def is_standalone_grapheme(text: str) -> bool:
    """True if `text` is one cluster that cannot merge with its neighbours.

    Rejects text that starts with an extending character (combining mark,
    ZWJ, skin-tone modifier), text that ends with a prepended character or
    a ZWJ, and a lone regional indicator, which would pair with the next one.
    """
    if count_graphemes(text) != 1:
        return False
    if _LONE_REGIONAL_INDICATOR_RE.fullmatch(text):
        return False
    if count_graphemes("a" + text) != 2:
        return False
    return count_graphemes(text + "a") == 2 and count_graphemes(text + "\U0001F600") == 2


class GraphemeReader:
    """Lazy, single-pass iterator of grapheme clusters over a binary UTF-8 source.

    A cluster is only handed out once a second cluster has started behind it:
    bytes still to come (a ZWJ, a modifier, a second regional indicator)
    could otherwise extend it. This one-cluster lookahead is enough because
    no alphabet symbol can attach to the symbol before it.

    Each chunk is decoded once; an incomplete trailing UTF-8 sequence stays
    inside the incremental decoder, and only the last cluster is carried over
    to the next chunk. At end of input the pending cluster is returned as the
    last one. Bytes that are not valid UTF-8 raise InvalidDataError. Errors
    from `source.read` propagate unchanged.
    """

    def __init__(self, source: BinaryIO, read_size: int = 4) -> None:
        self._source = source
        self._read_size = max(1, int(read_size))
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._ready: Deque[str] = deque()
        self._pending = ""
        self._eof = False

    def __iter__(self) -> "GraphemeReader":
        return self

    def __next__(self) -> str:
        grapheme = self.read_next()
        if grapheme is None:
            raise StopIteration
        return grapheme

    def read_next(self) -> Optional[str]:
        while not self._ready and not self._eof:
            chunk = self._source.read(self._read_size)
            if not chunk:
                self._eof = True
                self._feed(b"", final=True)
            else:
                self._feed(chunk, final=False)
        if self._ready:
            return self._ready.popleft()
        return None

    def _feed(self, chunk: bytes, final: bool) -> None:
        try:
            text = self._pending + self._decoder.decode(chunk, final)
        except UnicodeDecodeError as ex:
            raise InvalidDataError(f"invalid UTF-8 in stream: {ex.reason}") from ex
        clusters = [m.group() for m in _GRAPHEME_RE.finditer(text)]
        if not final and clusters:
            # The last cluster may still grow with the next chunk.
            self._pending = clusters.pop()
        else:
            self._pending = ""
        self._ready.extend(clusters)
