"""Signal names, signal effects and deferred delivery of caught signals."""

from __future__ import annotations

import re
import signal
import sys
from contextlib import contextmanager
from enum import Enum, auto
from typing import Any, Iterable, Iterator, Mapping, Optional

from .terms import XsError

NSIG = signal.NSIG

_KNOWN: dict[int, tuple[str, str]] = {
    int(sig): (sig.name.lower(), signal.strsignal(sig) or "") for sig in signal.Signals
}
_BY_NAME: dict[str, int] = {name: num for num, (name, _msg) in _KNOWN.items()}

_SIGWINCH = getattr(signal, "SIGWINCH", None)
_SPECIAL_ALLOWED = frozenset(s for s in (signal.SIGINT, _SIGWINCH) if s is not None)

_NUMBER = re.compile(r"\s*[+-]?\d+")


class SigEffect(Enum):
    NOCHANGE = auto()
    CATCH = auto()
    DEFAULT = auto()
    IGNORE = auto()
    NOOP = auto()
    SPECIAL = auto()


_PREFIXES = {
    SigEffect.CATCH: "",
    SigEffect.IGNORE: "-",
    SigEffect.NOOP: "/",
    SigEffect.SPECIAL: ".",
}
_EFFECT_OF_PREFIX = {"-": SigEffect.IGNORE, "/": SigEffect.NOOP, ".": SigEffect.SPECIAL}


class ShellSignal(Exception):
    """A caught signal delivered to the shell as an exception."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    @property
    def exception_list(self) -> tuple[str, str]:
        return ("signal", self.name)


def signal_number(name: str) -> int:
    """Map a name such as ``sigint`` or ``sig12`` to a signal number, or -1."""
    if not name.startswith("sig"):
        return -1
    if name in _BY_NAME:
        return _BY_NAME[name]
    suffix = name[3:]
    if _NUMBER.fullmatch(suffix):
        number = int(suffix)
        if 0 < number < NSIG:
            return number
    return -1


def signal_name(sig: int) -> str:
    """The shell's name for a signal number."""
    known = _KNOWN.get(sig)
    return known[0] if known else f"sig{sig}"


def signal_message(sig: int) -> str:
    """The message describing a signal number."""
    known = _KNOWN.get(sig)
    return known[1] if known else f"unknown signal {sig}"


def parse_signal_specs(specs: Iterable[str]) -> dict[int, SigEffect]:
    """Turn words like ``-sigint`` or ``/sigterm`` into a full effect table.

    Signals not mentioned get the default effect.
    """
    effects = {sig: SigEffect.DEFAULT for sig in range(1, NSIG)}
    for spec in specs:
        effect = _EFFECT_OF_PREFIX.get(spec[:1], SigEffect.CATCH)
        name = spec[1:] if effect is not SigEffect.CATCH else spec
        sig = signal_number(name)
        if sig < 0:
            raise XsError("$&setsignals", f"unknown signal: {name}")
        effects[sig] = effect
    return effects


def is_silent_signal(exc: Any) -> bool:
    """Is this exception an interrupt, which is reported without a message?"""
    if isinstance(exc, ShellSignal):
        return exc.name == "sigint"
    items = list(exc) if isinstance(exc, (list, tuple)) else []
    return len(items) >= 2 and items[0] == "signal" and items[1] == "sigint"


def _warn(message: str) -> None:
    sys.stderr.write(message + "\n")


class SignalTable:
    """The effect chosen for each signal, and the signals caught but not yet raised.

    When ``os_handlers`` is true, changing an effect also installs the
    matching handler in the process.
    """

    def __init__(self) -> None:
        self._effects = {sig: SigEffect.DEFAULT for sig in range(1, NSIG)}
        self._pending: set[int] = set()
        self._blocked = 0
        self.interrupted = False
        self.sigint_newline = True
        self.os_handlers = False

    @staticmethod
    def _check_sig(sig: int) -> None:
        if not 0 < sig < NSIG:
            raise ValueError(f"bad signal number: {sig}")

    def _handler(self, sig: int, _frame: Optional[Any]) -> None:
        self.catch(sig)

    def _install(self, sig: int, effect: SigEffect) -> bool:
        if not self.os_handlers:
            return True
        if effect is SigEffect.IGNORE:
            handler: Any = signal.SIG_IGN
        elif effect is SigEffect.DEFAULT:
            handler = signal.SIG_DFL
        else:
            handler = self._handler
        try:
            signal.signal(sig, handler)
        except (OSError, ValueError, RuntimeError):
            return False
        return True

    def set_effect(self, sig: int, effect: SigEffect) -> SigEffect:
        """Change the effect of ``sig``; returns the previous effect."""
        self._check_sig(sig)
        old = self._effects[sig]
        if effect is SigEffect.NOCHANGE or effect is old:
            return old
        if effect is SigEffect.IGNORE:
            if not self._install(sig, effect):
                _warn(f"$&setsignals: cannot ignore {signal_name(sig)}")
                return old
        elif effect in (SigEffect.SPECIAL, SigEffect.CATCH, SigEffect.NOOP):
            if effect is SigEffect.SPECIAL and sig not in _SPECIAL_ALLOWED:
                _warn(f"$&setsignals: special handler not defined for {signal_name(sig)}")
                return old
            if not self._install(sig, effect):
                _warn(f"$&setsignals: cannot catch {signal_name(sig)}")
                return old
        else:
            self._install(sig, effect)
        self._effects[sig] = effect
        return old

    def effect(self, sig: int) -> SigEffect:
        """The current effect of ``sig``."""
        self._check_sig(sig)
        return self._effects[sig]

    def apply(self, effects: Mapping[int, SigEffect]) -> None:
        """Set every signal's effect; signals missing from ``effects`` are unchanged."""
        with self.blocked():
            for sig in range(1, NSIG):
                self.set_effect(sig, effects.get(sig, SigEffect.NOCHANGE))

    def siglist(self) -> list[str]:
        """Names of the signals with a non-default effect, marked by effect."""
        return [
            _PREFIXES[effect] + signal_name(sig)
            for sig, effect in sorted(self._effects.items())
            if effect is not SigEffect.DEFAULT
        ]

    def catch(self, sig: int) -> None:
        """Record that ``sig`` arrived, to be raised by :meth:`check`."""
        self._check_sig(sig)
        if sig == _SIGWINCH:
            return
        self._pending.add(sig)
        self.interrupted = True

    @contextmanager
    def blocked(self) -> Iterator[None]:
        """Hold back delivery of caught signals while the block is active."""
        self._blocked += 1
        try:
            yield
        finally:
            self._blocked -= 1

    def check(self) -> None:
        """Raise the lowest pending signal as a :class:`ShellSignal`, if its effect asks."""
        if not self._pending or self._blocked:
            return
        sig = min(self._pending)
        self._pending.discard(sig)
        exc = ShellSignal(signal_name(sig))
        effect = self._effects[sig]
        if effect is SigEffect.CATCH:
            raise exc
        if effect is SigEffect.SPECIAL and sig == signal.SIGINT:
            if self.sigint_newline:
                sys.stderr.write("\n")
            self.sigint_newline = True
            raise exc