#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import os
import threading
import time
from typing import Dict, Optional

CONFIG_ENV = "MOJITOOLS_CONFIG"

DEFAULTS: Dict[str, object] = {
    # Empty means the alphabet bundled with the package.
    "alphabet_file": "",
    "encode_read_size": 4096,
    # Small reads keep the tokenizer buffer close to one symbol.
    "decode_read_size": 4,
    "runtime_log": False,
    "runtime_log_file": "mojiTools.log",
}

_SETTINGS: Dict[str, object] = dict(DEFAULTS)


def ts_local() -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())


def _int_cfg(value: object, default: int, min_v: int, max_v: int) -> int:
    try:
        v = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        v = int(default)
    if v < int(min_v):
        return int(min_v)
    if v > int(max_v):
        return int(max_v)
    return int(v)


def _str_cfg(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def normalize_config(data: Optional[Dict[str, object]]) -> Dict[str, object]:
    """Merge `data` over DEFAULTS, clamping numbers and dropping unknown keys."""
    src = data if isinstance(data, dict) else {}
    cfg: Dict[str, object] = dict(DEFAULTS)
    cfg["alphabet_file"] = _str_cfg(src.get("alphabet_file"), "")
    cfg["encode_read_size"] = _int_cfg(
        src.get("encode_read_size", DEFAULTS["encode_read_size"]), int(DEFAULTS["encode_read_size"]), 1, 1 << 20
    )
    cfg["decode_read_size"] = _int_cfg(
        src.get("decode_read_size", DEFAULTS["decode_read_size"]), int(DEFAULTS["decode_read_size"]), 1, 1 << 16
    )
    cfg["runtime_log"] = bool(src.get("runtime_log", DEFAULTS["runtime_log"]))
    cfg["runtime_log_file"] = _str_cfg(src.get("runtime_log_file"), str(DEFAULTS["runtime_log_file"]))
    return cfg


def load_config(path: Optional[str] = None) -> Dict[str, object]:
    """Read a JSON config file; missing or unreadable files give the defaults.

    Without `path`, the file named by $MOJITOOLS_CONFIG is used when set.
    """
    cfg_path = path or os.environ.get(CONFIG_ENV) or ""
    if not cfg_path or not os.path.isfile(cfg_path):
        return normalize_config(None)
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return normalize_config(None)
    if not isinstance(data, dict):
        return normalize_config(None)
    return normalize_config(data)


class RuntimeLog:
    """Append-only text log. Disabled by default; write failures are dropped."""

    def __init__(self, path: str = "", enabled: bool = False) -> None:
        self.path = path
        self.enabled = bool(enabled)
        self._lock = threading.Lock()

    def set_path(self, path: str) -> None:
        self.path = path

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = bool(enabled)

    def append(self, line: str) -> None:
        if not line or not self.enabled or not self.path:
            return
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with self._lock:
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError:
            pass


RUNTIME_LOG = RuntimeLog(path=str(DEFAULTS["runtime_log_file"]))


def log_event(msg: str) -> None:
    if not RUNTIME_LOG.enabled:
        return
    RUNTIME_LOG.append(f"{ts_local()} {msg}")


def setting(key: str) -> object:
    return _SETTINGS.get(key, DEFAULTS.get(key))


def configure(cfg: Optional[Dict[str, object]] = None) -> Dict[str, object]:
    """Apply a config dict to the process-wide settings.

    Without `cfg` the config file is read through load_config(), so
    $MOJITOOLS_CONFIG takes effect. The default alphabet is dropped and
    reloaded from `alphabet_file` on next use. Returns the normalized config
    actually applied.
    """
    from moji.alphabet import set_default_alphabet_file

    if cfg is None:
        cfg = load_config()
    merged = normalize_config(cfg)
    _SETTINGS.clear()
    _SETTINGS.update(merged)
    RUNTIME_LOG.set_path(str(merged["runtime_log_file"]))
    RUNTIME_LOG.set_enabled(bool(merged["runtime_log"]))
    set_default_alphabet_file(str(merged["alphabet_file"]) or None)
    return merged
