#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Reversible bytes <-> emoji text codec.

Input bits are cut into 11-bit groups, MSB first; each group is one symbol of
the 2048-entry main table. A final partial group of 4..10 bits also uses the
main table, a final 1..3 bits use the small tail table. The decoder recovers
the width of a final main symbol from the symbol count alone, so the output
carries no length header.

The "format" is just the symbol string as UTF-8 text.
"""

from __future__ import annotations

import io
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, TypeVar, Union

from moji.alphabet import MAIN_BITS, Alphabet, default_alphabet
from moji.errors import AlphabetError, CodecError, InvalidDataError, InvalidSymbolError
from moji.graphemes import GraphemeReader, count_graphemes, iter_graphemes
from moji.runtime import log_event, setting

TAIL_MAX_BITS = 3

BytesLike = Union[bytes, bytearray, memoryview]

_T = TypeVar("_T")


class _SymbolPacker:
    """Encode-side accumulator: the low `_bits` bits of `_stage` are not yet emitted."""

    def __init__(self, alphabet: Alphabet) -> None:
        self._alphabet = alphabet
        self._stage = 0
        self._bits = 0

    def push(self, byte: int) -> Optional[str]:
        need = MAIN_BITS - self._bits
        if need <= 8:
            self._bits = 8 - need
            index = (self._stage << need) | (byte >> self._bits)
            self._stage = byte & ((1 << self._bits) - 1)
            return self._alphabet.main_symbol_of(index)
        self._stage = (self._stage << 8) | byte
        self._bits += 8
        return None

    def flush(self) -> Optional[str]:
        stage, bits = self._stage, self._bits
        self._stage = 0
        self._bits = 0
        if bits == 0:
            return None
        if bits <= TAIL_MAX_BITS:
            return self._alphabet.tail_symbol_of(stage)
        # 4..10 bits: stage < 1024, always a valid main index.
        return self._alphabet.main_symbol_of(stage)


class _SymbolUnpacker:
    """Decode-side accumulator.

    `_residue` is (11 * symbols seen) mod 8. For the last symbol it gives the
    number of bits the encoder actually put there: 11 - residue.
    """

    def __init__(self, alphabet: Alphabet) -> None:
        self._alphabet = alphabet
        self._stage = 0
        self._bits = 0
        self._residue = 0
        self._count = 0

    def push(self, symbol: str, last: bool) -> bytes:
        self._count += 1
        self._residue = (self._residue + MAIN_BITS) % 8
        value = self._alphabet.main_index_of(symbol)
        if value is not None:
            width = MAIN_BITS - self._residue if last else MAIN_BITS
            if value >> width:
                raise InvalidSymbolError(
                    f"symbol #{self._count} {symbol!r} does not fit in the final {width} bits"
                )
        else:
            value = self._alphabet.tail_index_of(symbol)
            if value is None:
                raise InvalidSymbolError(f"unknown symbol #{self._count} {symbol!r}")
            width = 8 - self._bits
            if value >> width:
                raise InvalidSymbolError(
                    f"tail symbol #{self._count} {symbol!r} does not fit in the remaining {width} bits"
                )

        self._stage = (self._stage << width) | value
        self._bits += width
        out = bytearray()
        while self._bits >= 8:
            self._bits -= 8
            out.append(self._stage >> self._bits)
            self._stage &= (1 << self._bits) - 1
        return bytes(out)

    def flush(self) -> bytes:
        stage, bits = self._stage, self._bits
        self._stage = 0
        self._bits = 0
        if bits == 0:
            return b""
        return bytes([stage >> (8 - bits)])


def _mark_last(items: Iterable[_T]) -> Iterator[Tuple[_T, bool]]:
    """Yield (item, is_last), reading one item ahead."""
    it = iter(items)
    try:
        prev = next(it)
    except StopIteration:
        return
    for item in it:
        yield prev, False
        prev = item
    yield prev, True


def _alphabet_or_default(alphabet: Optional[Alphabet]) -> Alphabet:
    if alphabet is None:
        return default_alphabet()
    return alphabet


def _read_size(value: Optional[int], key: str) -> int:
    if value is None:
        value = int(setting(key))  # type: ignore[arg-type]
    return max(1, int(value))


def _symbol_writer(sink: Any) -> Callable[[str], Any]:
    if isinstance(sink, io.TextIOBase):
        return sink.write
    return lambda sym: sink.write(sym.encode("utf-8"))


def encode(data: BytesLike, alphabet: Optional[Alphabet] = None) -> str:
    """Encode bytes as a symbol string. Never fails; b"" gives ""."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise CodecError("data must be bytes")
    packer = _SymbolPacker(_alphabet_or_default(alphabet))
    out: List[str] = []
    for byte in bytes(data):
        sym = packer.push(byte)
        if sym is not None:
            out.append(sym)
    sym = packer.flush()
    if sym is not None:
        out.append(sym)
    return "".join(out)


def decode(text: str, alphabet: Optional[Alphabet] = None) -> bytes:
    """Decode a symbol string produced by encode().

    Raises InvalidSymbolError on the first symbol the encoder could not have
    produced; nothing is returned in that case. "" decodes to b"".
    """
    if not isinstance(text, str):
        raise CodecError("text must be str")
    unpacker = _SymbolUnpacker(_alphabet_or_default(alphabet))
    out = bytearray()
    for symbol, last in _mark_last(iter_graphemes(text)):
        out.extend(unpacker.push(symbol, last))
    out.extend(unpacker.flush())
    return bytes(out)


def encode_stream(
    source: Any,
    sink: Any,
    alphabet: Optional[Alphabet] = None,
    read_size: Optional[int] = None,
) -> int:
    """Encode a binary reader into a writer, one symbol at a time.

    `source` needs `read(n)` returning bytes. A text sink (io.TextIOBase) gets
    str symbols, any other sink gets their UTF-8 bytes. Returns the number of
    symbols written. OSError from source or sink propagates.
    """
    packer = _SymbolPacker(_alphabet_or_default(alphabet))
    size = _read_size(read_size, "encode_read_size")
    write = _symbol_writer(sink)
    total = 0
    count = 0
    try:
        while True:
            chunk = source.read(size)
            if not chunk:
                break
            total += len(chunk)
            for byte in chunk:
                sym = packer.push(byte)
                if sym is not None:
                    write(sym)
                    count += 1
        sym = packer.flush()
        if sym is not None:
            write(sym)
            count += 1
    except OSError as ex:
        log_event(f"ENCODE_STREAM: failed after {total} bytes, {count} symbols: {ex}")
        raise
    log_event(f"ENCODE_STREAM: bytes={total} symbols={count}")
    return count


def decode_stream(
    source: Any,
    sink: Any,
    alphabet: Optional[Alphabet] = None,
    read_size: Optional[int] = None,
) -> int:
    """Decode UTF-8 symbol text from a binary reader into a binary writer.

    Symbols are cut by GraphemeReader, so the whole input is never held in
    memory. Bytes are written as soon as they are complete, which means the
    sink may hold partial output when InvalidSymbolError or InvalidDataError
    is raised. Returns the number of bytes written.
    """
    unpacker = _SymbolUnpacker(_alphabet_or_default(alphabet))
    reader = GraphemeReader(source, read_size=_read_size(read_size, "decode_read_size"))
    symbols = 0
    written = 0
    try:
        for symbol, last in _mark_last(reader):
            symbols += 1
            out = unpacker.push(symbol, last)
            if out:
                sink.write(out)
                written += len(out)
        out = unpacker.flush()
        if out:
            sink.write(out)
            written += len(out)
    except (CodecError, OSError) as ex:
        log_event(f"DECODE_STREAM: {type(ex).__name__} after {symbols} symbols, {written} bytes: {ex}")
        raise
    log_event(f"DECODE_STREAM: symbols={symbols} bytes={written}")
    return written


def encoding_stats(data: BytesLike, alphabet: Optional[Alphabet] = None) -> Dict[str, object]:
    """Size report for `data` and its encoding.

    Purely diagnostic; the encoding is always longer than the input in bytes.
    """
    text = encode(data, alphabet)
    plain_bytes = len(bytes(data))
    encoded_bytes = len(text.encode("utf-8"))
    expansion: float
    if plain_bytes > 0:
        expansion = encoded_bytes / float(plain_bytes)
    else:
        expansion = 0.0
    return {
        "plain_bytes": plain_bytes,
        "symbols": count_graphemes(text),
        "code_points": len(text),
        "encoded_bytes": encoded_bytes,
        "expansion": expansion,
    }
