#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations


class CodecError(ValueError):
    pass


class InvalidSymbolError(CodecError):
    """A symbol is in neither table, or its value cannot fit the bits still owed."""


class InvalidDataError(CodecError):
    """Stream input that is not valid UTF-8 once the source is exhausted."""


class AlphabetError(CodecError):
    """Alphabet tables that break the codec's table invariants."""
