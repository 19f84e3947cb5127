"""Terminal output helpers for the live-context CLI.

ANSI colors are disabled when stdout is not a TTY or when the
``NO_COLOR`` environment variable is set.
"""

from __future__ import annotations

import os
import sys

from live_context.models import ContextUnit, UnitType

SHORT_ID_LENGTH = 8


def _supports_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(sys.stdout, "isatty"):
        return False
    return sys.stdout.isatty()


_COLOR = _supports_color()


def _ansi(code: str, text: str) -> str:
    if not _COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def bold(text: str) -> str:
    return _ansi("1", text)


def dim(text: str) -> str:
    return _ansi("2", text)


def strike(text: str) -> str:
    return _ansi("9", text)


def green(text: str) -> str:
    return _ansi("32", text)


def yellow(text: str) -> str:
    return _ansi("33", text)


def red(text: str) -> str:
    return _ansi("31", text)


def cyan(text: str) -> str:
    return _ansi("36", text)


def magenta(text: str) -> str:
    return _ansi("35", text)


# ── Structured output ───────────────────────────────────────────────


def header(title: str) -> None:
    print(f"\n{bold(title)}")


def success(msg: str) -> None:
    print(f"  {green('✓')} {msg}")


def warn(msg: str) -> None:
    print(f"  {yellow('!')} {msg}")


def error(msg: str) -> None:
    print(f"  {red('✗')} {msg}")


def info(msg: str) -> None:
    print(f"  {msg}")


def kv(key: str, value: object, indent: int = 2) -> None:
    pad = " " * indent
    print(f"{pad}{dim(str(key) + ':')}  {value}")


def next_step(command: str, description: str = "") -> None:
    desc = f"  {dim(description)}" if description else ""
    print(f"    {cyan(command)}{desc}")


def banner() -> None:
    print(bold("live-context") + dim(" · curate what your model remembers"))


# ── Domain formatting ───────────────────────────────────────────────

_TYPE_COLORS = {
    UnitType.user: cyan,
    UnitType.assistant: green,
    UnitType.system: magenta,
    UnitType.note: yellow,
}


def short_id(value: str) -> str:
    return value[:SHORT_ID_LENGTH]


def truncate(text: str, limit: int = 72) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 1] + "…"


def unit_line(unit: ContextUnit, *, full: bool = False) -> str:
    """One unit as ``id  [type] *content`` (``*`` marks pinned units)."""
    label = _TYPE_COLORS[unit.type](f"[{unit.type.value}]")
    marker = yellow("*") if unit.pinned else " "
    body = unit.content if full else truncate(unit.content)
    if unit.removed:
        body = dim(strike(body))
    return f"  {dim(short_id(unit.id))}  {label} {marker}{body}"


def gauge(fraction: float, width: int = 30) -> str:
    filled = max(0, min(width, round(fraction * width)))
    return "[" + "█" * filled + dim("·" * (width - filled)) + "]"
