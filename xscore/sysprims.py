"""Resource limits, umask, sleep and directory changes."""

from __future__ import annotations

import os
import re
import resource
from dataclasses import dataclass
from typing import Optional, Sequence

from .terms import XsError, strerror

SIZE_SUFFIXES: tuple[tuple[str, int], ...] = (
    ("g", 1024 * 1024 * 1024),
    ("m", 1024 * 1024),
    ("k", 1024),
)
TIME_SUFFIXES: tuple[tuple[str, int], ...] = (
    ("h", 60 * 60),
    ("m", 60),
    ("s", 1),
)


@dataclass(frozen=True)
class Limit:
    """A named resource limit and the suffixes its values may carry."""

    name: str
    resource: int
    suffixes: tuple[tuple[str, int], ...] = ()


_LIMIT_SPECS = (
    ("cputime", "RLIMIT_CPU", TIME_SUFFIXES),
    ("filesize", "RLIMIT_FSIZE", SIZE_SUFFIXES),
    ("datasize", "RLIMIT_DATA", SIZE_SUFFIXES),
    ("stacksize", "RLIMIT_STACK", SIZE_SUFFIXES),
    ("coredumpsize", "RLIMIT_CORE", SIZE_SUFFIXES),
    ("memoryuse", "RLIMIT_RSS", SIZE_SUFFIXES),
    ("lockedmemory", "RLIMIT_MEMLOCK", SIZE_SUFFIXES),
    ("descriptors", "RLIMIT_NOFILE", ()),
    ("processes", "RLIMIT_NPROC", ()),
    ("virtualsize", "RLIMIT_AS", SIZE_SUFFIXES),
    ("msgqueuesize", "RLIMIT_MSGQUEUE", SIZE_SUFFIXES),
    ("nicelimit", "RLIMIT_NICE", ()),
    ("rtpriolimit", "RLIMIT_RTPRIO", ()),
    ("rtrunlimit", "RLIMIT_RTTIME", ()),
    ("sigqlimit", "RLIMIT_SIGPENDING", ()),
)

LIMITS: tuple[Limit, ...] = tuple(
    Limit(name, getattr(resource, const), suffixes)
    for name, const, suffixes in _LIMIT_SPECS
    if hasattr(resource, const)
)

_STRTOL = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")
_OCTAL = re.compile(r"\s*([+-]?)([0-7]+)")
_DOUBLE = re.compile(
    r"\s*[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


def _strtol(text: str) -> tuple[int, str]:
    """Parse a C-style integer prefix (base 0); returns the value and the rest."""
    match = _STRTOL.match(text)
    if match is None:
        return 0, text
    sign, digits = match.groups()
    if digits[:2] in ("0x", "0X"):
        value = int(digits[2:], 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    return (-value if sign == "-" else value), text[match.end():]


def find_limit(name: str) -> Limit:
    """The limit called ``name``."""
    for limit in LIMITS:
        if limit.name == name:
            return limit
    raise XsError("$&limit", f"{name}: no such limit")


def parse_limit(limit: Limit, text: str) -> int:
    """Parse a limit value such as ``4m``, ``1:30`` or ``unlimited``."""
    if text == "unlimited":
        return resource.RLIM_INFINITY
    if not text[:1].isdigit():
        raise XsError("$&limit", f"{text}: bad limit value")
    bad = XsError("$&limit", f"{limit.name} {text}: bad limit value")
    if limit.suffixes is TIME_SUFFIXES and ":" in text:
        minutes, rest = _strtol(text)
        if not rest.startswith(":"):
            raise bad
        seconds, rest = _strtol(rest[1:])
        value = minutes * 60 + seconds
        if rest.startswith(":"):
            more, rest = _strtol(rest[1:])
            value = value * 60 + more
        if rest:
            raise bad
        return value
    value, rest = _strtol(text)
    if rest:
        for name, amount in limit.suffixes:
            if name == rest:
                return value * amount
        raise bad
    return value


def format_limit(limit: Limit, value: int) -> str:
    """The line reporting ``value`` for ``limit``, using the largest exact suffix."""
    if value == resource.RLIM_INFINITY:
        return f"{limit.name:<8}\tunlimited"
    suffix = ""
    for name, amount in limit.suffixes:
        if value % amount == 0 and (value != 0 or amount > 1):
            value //= amount
            suffix = name if value != 0 else ""
            break
    return f"{limit.name:<8}\t{value}{suffix}"


def _current(limit: Limit, hard: bool) -> int:
    soft_value, hard_value = resource.getrlimit(limit.resource)
    return hard_value if hard else soft_value


def limit_command(args: Sequence[str]) -> list[str]:
    """Show or set resource limits; returns the lines to print.

    ``-h`` first selects hard limits. With no name every limit is shown,
    with a name that limit, and with a name and a value the limit is set.
    """
    args = list(args)
    hard = False
    if args and args[0] == "-h":
        hard = True
        args = args[1:]
    if not args:
        return [format_limit(limit, _current(limit, hard)) for limit in LIMITS]
    limit = find_limit(args[0])
    if len(args) == 1:
        return [format_limit(limit, _current(limit, hard))]
    soft_value, hard_value = resource.getrlimit(limit.resource)
    value = parse_limit(limit, args[1])
    if hard:
        hard_value = value
    else:
        soft_value = value
    try:
        resource.setrlimit(limit.resource, (soft_value, hard_value))
    except OSError as exc:
        raise XsError("$&limit", strerror(exc.errno or 0)) from None
    except ValueError as exc:
        raise XsError("$&limit", str(exc)) from None
    return []


def parse_umask(text: str) -> int:
    """Parse an octal file-creation mask."""
    if text == "":
        return 0
    match = _OCTAL.fullmatch(text)
    if match is None:
        raise XsError("$&umask", f"bad umask: {text}")
    sign, digits = match.groups()
    value = int(digits, 8)
    if sign == "-" and value:
        raise XsError("$&umask", f"bad umask: {text}")
    if value > 0o7777:
        raise XsError("$&umask", f"bad umask: {text}")
    return value


def umask_command(args: Sequence[str]) -> Optional[str]:
    """Show the umask as four octal digits, or set it from one argument."""
    args = list(args)
    if not args:
        mask = os.umask(0)
        os.umask(mask)
        return f"{mask:04o}"
    if len(args) == 1:
        os.umask(parse_umask(args[0]))
        return None
    raise XsError("$&umask", "usage: $&umask [mask]")


def parse_sleep(args: Sequence[str]) -> float:
    """The number of seconds named by the single argument."""
    args = list(args)
    if len(args) != 1 or _DOUBLE.fullmatch(args[0]) is None:
        raise XsError("$&sleep", "usage: $&sleep seconds")
    return float(args[0])


def change_directory(args: Sequence[str]) -> None:
    """Change the working directory to the single argument."""
    args = list(args)
    if len(args) != 1:
        raise XsError("$&cd", "usage: $&cd directory")
    directory = args[0]
    try:
        os.chdir(directory)
    except OSError as exc:
        raise XsError("$&cd", f"{directory}: {strerror(exc.errno or 0)}") from None