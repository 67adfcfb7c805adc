"""Exit statuses: truth of status lists and conversion of wait statuses."""

from __future__ import annotations

import os
import re
from typing import Iterable, Optional, Union

from .signals import signal_message, signal_name
from .terms import Term

StatusItem = Union[Term, str]

_STRTOL = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


def _text(item: StatusItem) -> Optional[str]:
    if isinstance(item, Term):
        return item.text
    return item


def is_true(status: Iterable[StatusItem]) -> bool:
    """A status list is true when every element is empty or ``0``."""
    for item in status:
        text = _text(item)
        if text is None or text not in ("", "0"):
            return False
    return True


def _parse_number(text: str) -> Optional[int]:
    match = _STRTOL.fullmatch(text)
    if match is None:
        return None
    sign, digits = match.groups()
    if digits[:2] in ("0x", "0X"):
        value = int(digits[2:], 16)
    elif digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    return -value if sign == "-" else value


def exit_status(status: Optional[Iterable[StatusItem]]) -> int:
    """Turn a status list into a process exit value."""
    items = list(status) if status is not None else []
    if not items:
        return 0
    if len(items) > 1:
        return 0 if is_true(items) else 1
    text = _text(items[0])
    if text is None:
        return 1
    if text == "":
        return 0
    number = _parse_number(text)
    if number is None or not 0 <= number <= 255:
        return 1
    return number


def make_status(waitstatus: int) -> str:
    """Turn a wait status into the shell's status string."""
    if os.WIFSIGNALED(waitstatus):
        name = signal_name(os.WTERMSIG(waitstatus))
        if os.WCOREDUMP(waitstatus):
            name += "+core"
        return name
    return str(os.WEXITSTATUS(waitstatus))


def status_message(pid: int, waitstatus: int) -> Optional[str]:
    """The line to report for a process killed by a signal, or None."""
    if not os.WIFSIGNALED(waitstatus):
        return None
    msg = signal_message(os.WTERMSIG(waitstatus))
    tail = ""
    if os.WCOREDUMP(waitstatus):
        tail = "--core dumped" if msg else "core dumped"
    if not msg and not tail:
        return None
    return f"{msg}{tail}" if pid == 0 else f"{pid}: {msg}{tail}"