#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
moji package

Internal modules for moji_codec.py: the alphabet tables, the grapheme
tokenizer and the runtime config/log. moji_codec.py stays the public entry
point; the pieces live here so they can be tested on their own.
"""

from __future__ import annotations
