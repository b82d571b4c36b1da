"""Generate and convert configuration files."""

from __future__ import annotations

import json
import os
from typing import Any

import yaml

SUPPORTED_EXTS = ("json", "yaml", "yml")

TEMPLATE = """
log:
  level: info
  file: ""

plugins:
  - tag: forward_google
    type: fast_forward
    args:
      upstream:
        - addr: https://8.8.8.8/dns-query

servers:
  - exec: forward_google
    listeners:
      - protocol: udp
        addr: 127.0.0.1:5533
      - protocol: tcp
        addr: 127.0.0.1:5533
"""


def _config_type(path: str) -> str:
    ext = os.path.splitext(path)[1].lstrip(".").lower()
    if ext not in SUPPORTED_EXTS:
        raise ValueError(f'unsupported config type "{ext}"')
    return ext


def _load(path: str) -> Any:
    kind = _config_type(path)
    with open(path, encoding="utf-8") as f:
        text = f.read()
    data = json.loads(text) if kind == "json" else yaml.safe_load(text)
    return {} if data is None else data


def _dump(path: str, data: Any, exclusive: bool) -> None:
    kind = _config_type(path)
    if kind == "json":
        text = json.dumps(data, indent=2) + "\n"
    else:
        text = yaml.safe_dump(data, sort_keys=False)
    with open(path, "x" if exclusive else "w", encoding="utf-8") as f:
        f.write(text)


def gen_config(out: str) -> None:
    """Write a template configuration to ``out``, in the format of its extension."""
    _dump(out, yaml.safe_load(TEMPLATE), exclusive=False)


def convert_config(src: str, dst: str) -> None:
    """Convert ``src`` to the format of ``dst``. An existing ``dst`` is an error."""
    data = _load(src)
    _dump(dst, data, exclusive=True)