#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import io
import random
import unittest

from moji.alphabet import Alphabet, default_alphabet
from moji.graphemes import iter_graphemes
from moji_codec import (
    CodecError,
    InvalidDataError,
    InvalidSymbolError,
    decode,
    decode_stream,
    encode,
    encode_stream,
    encoding_stats,
)


class _ChunkedReader:
    """Binary reader that hands out at most `chunk` bytes per read()."""

    def __init__(self, data: bytes, chunk: int) -> None:
        self._buf = io.BytesIO(data)
        self._chunk = int(chunk)
        self.reads = 0

    def read(self, n: int = -1) -> bytes:
        self.reads += 1
        if n is None or n < 0:
            n = self._chunk
        return self._buf.read(min(n, self._chunk))


class _BrokenReader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._done = False

    def read(self, n: int = -1) -> bytes:
        if self._done:
            raise OSError("device went away")
        self._done = True
        return self._data


class _BrokenWriter:
    def write(self, data: bytes) -> int:
        raise OSError("disk full")


def _symbols(text: str):
    return list(iter_graphemes(text))


def _random_bytes(rng: random.Random, n: int) -> bytes:
    return bytes(rng.randrange(256) for _ in range(n))


class EncodeDecodeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.alphabet = default_alphabet()
        self.rng = random.Random(20240611)

    def test_roundtrip_empty(self) -> None:
        self.assertEqual(encode(b""), "")
        self.assertEqual(decode(""), b"")

    def test_roundtrip_short_lengths(self) -> None:
        for n in range(1, 80):
            data = _random_bytes(self.rng, n)
            self.assertEqual(decode(encode(data)), data, msg=f"length {n}")

    def test_roundtrip_all_byte_values(self) -> None:
        data = bytes(range(256))
        self.assertEqual(decode(encode(data)), data)
        self.assertEqual(decode(encode(data[::-1])), data[::-1])

    def test_roundtrip_extremes(self) -> None:
        for n in (1, 2, 3, 10, 11, 12, 33):
            for fill in (b"\x00", b"\xff"):
                data = fill * n
                self.assertEqual(decode(encode(data)), data)

    def test_roundtrip_long_input(self) -> None:
        data = _random_bytes(self.rng, 5000)
        self.assertEqual(decode(encode(data)), data)

    def test_accepts_bytearray_and_memoryview(self) -> None:
        data = b"mesh of emoji"
        self.assertEqual(encode(bytearray(data)), encode(data))
        self.assertEqual(encode(memoryview(data)), encode(data))

    def test_symbol_count_is_ceil_of_bits(self) -> None:
        for n in range(0, 40):
            text = encode(b"\x5a" * n)
            self.assertEqual(len(_symbols(text)), (8 * n + 10) // 11, msg=f"length {n}")

    def test_concrete_three_bytes(self) -> None:
        text = encode(bytes([0x31, 0x32, 0x33]))
        syms = _symbols(text)
        self.assertEqual(len(syms), 3)
        self.assertEqual(self.alphabet.main_index_of(syms[0]), 0x189)
        self.assertEqual(self.alphabet.main_index_of(syms[1]), 0x48C)
        self.assertIsNone(self.alphabet.main_index_of(syms[2]))
        self.assertEqual(self.alphabet.tail_index_of(syms[2]), 3)
        self.assertEqual(decode(text), b"123")

    def test_final_group_table_choice(self) -> None:
        # 8n mod 11 is the width of the last group: 1..3 -> tail, 4..10 -> main, 0 -> none.
        for n in range(1, 23):
            syms = _symbols(encode(b"\xa5" * n))
            rem = (8 * n) % 11
            last = syms[-1]
            if 1 <= rem <= 3:
                self.assertIsNotNone(self.alphabet.tail_index_of(last), msg=f"length {n}")
            else:
                self.assertIsNotNone(self.alphabet.main_index_of(last), msg=f"length {n}")
            for sym in syms[:-1]:
                self.assertIsNotNone(self.alphabet.main_index_of(sym))

    def test_single_byte_is_one_main_symbol(self) -> None:
        text = encode(b"\x31")
        self.assertEqual(text, self.alphabet.main_symbol_of(0x31))
        self.assertEqual(decode(text), b"\x31")

    def test_decode_rejects_foreign_text(self) -> None:
        with self.assertRaises(InvalidSymbolError):
            decode("Invalid data")

    def test_decode_rejects_foreign_symbol_after_valid_prefix(self) -> None:
        with self.assertRaises(InvalidSymbolError):
            decode(encode(b"hello") + "x")
        with self.assertRaises(InvalidSymbolError):
            decode("x" + encode(b"hello"))

    def test_tail_value_boundary(self) -> None:
        # Lengths ending in a 2, 1 and 3 bit tail group.
        for n in (3, 7, 10):
            data = _random_bytes(self.rng, n)
            syms = _symbols(encode(data))
            need = (8 * n) % 11
            prefix = "".join(syms[:-1])

            with self.assertRaises(InvalidSymbolError):
                decode(prefix + self.alphabet.tail_symbol_of(1 << need))

            mask = (1 << need) - 1
            expected = data[:-1] + bytes([(data[-1] & ~mask & 0xFF) | mask])
            self.assertEqual(decode(prefix + self.alphabet.tail_symbol_of(mask)), expected)

    def test_decode_rejects_oversized_final_main_symbol(self) -> None:
        # One byte: a single main symbol carrying 8 bits.
        with self.assertRaises(InvalidSymbolError):
            decode(self.alphabet.main_symbol_of(0x100))
        self.assertEqual(decode(self.alphabet.main_symbol_of(0xFF)), b"\xff")

    def test_decode_is_all_or_nothing(self) -> None:
        text = encode(b"partial output must not leak") + "?"
        result = None
        with self.assertRaises(InvalidSymbolError):
            result = decode(text)
        self.assertIsNone(result)

    def test_type_checks(self) -> None:
        with self.assertRaises(CodecError):
            encode("not bytes")  # type: ignore[arg-type]
        with self.assertRaises(CodecError):
            decode(b"not text")  # type: ignore[arg-type]

    def test_errors_are_value_errors(self) -> None:
        self.assertTrue(issubclass(InvalidSymbolError, ValueError))
        self.assertTrue(issubclass(InvalidDataError, CodecError))


class CustomAlphabetTests(unittest.TestCase):
    def setUp(self) -> None:
        main = [chr(0x4E00 + i) for i in range(2048)]
        tail = list("abcdefghijklmnop")
        self.allowed = set(main) | set(tail)
        self.alphabet = Alphabet(main, tail, source="test")

    def test_roundtrip_with_custom_alphabet(self) -> None:
        data = b"\x00\x01\x02custom tables\xfe\xff"
        text = encode(data, alphabet=self.alphabet)
        self.assertTrue(set(text) <= self.allowed)
        self.assertEqual(decode(text, alphabet=self.alphabet), data)

    def test_three_bytes_end_with_tail_letter(self) -> None:
        text = encode(b"123", alphabet=self.alphabet)
        self.assertEqual(text, chr(0x4E00 + 0x189) + chr(0x4E00 + 0x48C) + "d")

    def test_default_alphabet_symbols_are_foreign(self) -> None:
        with self.assertRaises(InvalidSymbolError):
            decode(encode(b"abc"), alphabet=self.alphabet)


class StreamTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rng = random.Random(7)

    def test_decode_stream_matches_decode(self) -> None:
        for n in (0, 1, 2, 3, 7, 10, 11, 64, 257):
            data = _random_bytes(self.rng, n)
            encoded = encode(data).encode("utf-8")
            for chunk in (1, 3, 4, 64):
                sink = io.BytesIO()
                written = decode_stream(_ChunkedReader(encoded, chunk), sink)
                self.assertEqual(sink.getvalue(), data, msg=f"length {n}, chunk {chunk}")
                self.assertEqual(written, n)

    def test_decode_stream_read_size(self) -> None:
        data = _random_bytes(self.rng, 100)
        sink = io.BytesIO()
        decode_stream(io.BytesIO(encode(data).encode("utf-8")), sink, read_size=1)
        self.assertEqual(sink.getvalue(), data)

    def test_stream_roundtrip_large_reads(self) -> None:
        data = _random_bytes(self.rng, 200_000)
        encoded = io.BytesIO()
        encode_stream(io.BytesIO(data), encoded, read_size=65536)
        self.assertEqual(encoded.getvalue(), encode(data).encode("utf-8"))
        encoded.seek(0)
        decoded = io.BytesIO()
        self.assertEqual(decode_stream(encoded, decoded, read_size=65536), len(data))
        self.assertEqual(decoded.getvalue(), data)

    def test_encode_stream_matches_encode_bytes_sink(self) -> None:
        for n in (0, 1, 3, 11, 100):
            data = _random_bytes(self.rng, n)
            sink = io.BytesIO()
            count = encode_stream(_ChunkedReader(data, 2), sink)
            self.assertEqual(sink.getvalue(), encode(data).encode("utf-8"))
            self.assertEqual(count, len(_symbols(encode(data))))

    def test_encode_stream_text_sink(self) -> None:
        data = _random_bytes(self.rng, 50)
        sink = io.StringIO()
        encode_stream(io.BytesIO(data), sink, read_size=1)
        self.assertEqual(sink.getvalue(), encode(data))

    def test_stream_roundtrip(self) -> None:
        data = _random_bytes(self.rng, 1000)
        encoded = io.BytesIO()
        encode_stream(io.BytesIO(data), encoded)
        encoded.seek(0)
        decoded = io.BytesIO()
        decode_stream(encoded, decoded)
        self.assertEqual(decoded.getvalue(), data)

    def test_decode_stream_empty(self) -> None:
        sink = io.BytesIO()
        self.assertEqual(decode_stream(io.BytesIO(b""), sink), 0)
        self.assertEqual(sink.getvalue(), b"")

    def test_decode_stream_rejects_foreign_symbols(self) -> None:
        with self.assertRaises(InvalidSymbolError):
            decode_stream(io.BytesIO("Invalid data".encode("utf-8")), io.BytesIO())

    def test_decode_stream_invalid_utf8(self) -> None:
        raw = encode(b"hi").encode("utf-8") + b"\xff"
        with self.assertRaises(InvalidDataError):
            decode_stream(io.BytesIO(raw), io.BytesIO())

    def test_decode_stream_truncated_utf8(self) -> None:
        raw = encode(b"truncated").encode("utf-8")[:-1]
        with self.assertRaises(InvalidDataError):
            decode_stream(io.BytesIO(raw), io.BytesIO())

    def test_source_errors_propagate(self) -> None:
        with self.assertRaises(OSError):
            encode_stream(_BrokenReader(b"abc"), io.BytesIO())
        with self.assertRaises(OSError):
            decode_stream(_BrokenReader(encode(b"abc").encode("utf-8")), io.BytesIO())

    def test_sink_errors_propagate(self) -> None:
        with self.assertRaises(OSError):
            encode_stream(io.BytesIO(b"abcdef"), _BrokenWriter())
        with self.assertRaises(OSError):
            decode_stream(io.BytesIO(encode(b"abcdef").encode("utf-8")), _BrokenWriter())


class EncodingStatsTests(unittest.TestCase):
    def test_stats_three_bytes(self) -> None:
        stats = encoding_stats(b"123")
        self.assertEqual(stats["plain_bytes"], 3)
        self.assertEqual(stats["symbols"], 3)
        self.assertEqual(stats["encoded_bytes"], len(encode(b"123").encode("utf-8")))
        self.assertGreaterEqual(int(stats["code_points"]), 3)
        self.assertGreater(float(stats["expansion"]), 1.0)

    def test_stats_empty(self) -> None:
        stats = encoding_stats(b"")
        self.assertEqual(stats["symbols"], 0)
        self.assertEqual(stats["encoded_bytes"], 0)
        self.assertEqual(stats["expansion"], 0.0)


if __name__ == "__main__":
    unittest.main()
