from __future__ import annotations

import math
import os
import pathlib
from typing import Any

import orjson


def ensure_dir(p: str | pathlib.Path) -> None:
    pathlib.Path(p).mkdir(parents=True, exist_ok=True)


def read_env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(name, default)


def write_json(path: str | pathlib.Path, data: Any) -> None:
    ensure_dir(pathlib.Path(path).parent)
    with open(path, "wb") as f:
        f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS))


def page_count(total: int, size: int) -> int:
    return math.ceil(total / size) if total > 0 else 0


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))
