"""Shell variables: lookup, definition, dynamic binding and the environment."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence

from .terms import Term, XsError

ENV_SEPARATOR = "\x01"
ENV_ESCAPE = "\x02"

Settor = Callable[[str, list], Sequence[Any]]


@dataclass
class Binding:
    """A lexical binding; bindings chain through ``next``."""

    name: str
    defn: list = field(default_factory=list)
    next: Optional["Binding"] = None

    def __iter__(self) -> Iterator["Binding"]:
        node: Optional[Binding] = self
        while node is not None:
            yield node
            node = node.next


@dataclass
class Variable:
    """A dynamic variable's value and its bookkeeping."""

    defn: list
    env: Optional[str] = None
    has_bindings: bool = False
    internal: bool = False


def _is_counting(name: str) -> bool:
    return name.isascii() and name.isdigit() and name != "0"


def _is_special(name: str) -> bool:
    return name in ("*", "0")


def _has_bindings(defn: Sequence[Any]) -> bool:
    return any(
        isinstance(item, Term)
        and item.is_closure()
        and getattr(item.closure, "binding", None) is not None
        for item in defn
    )


def validate_var(name: str) -> None:
    """Raise :class:`XsError` unless ``name`` is a usable variable name."""
    if name == "":
        raise XsError("xs:var", "zero-length variable name")
    if _is_counting(name):
        raise XsError("xs:var", f"illegal variable name (is a number): {name}")


def _encode(defn: Sequence[Any]) -> str:
    return ENV_SEPARATOR.join(
        str(word)
        .replace(ENV_ESCAPE, ENV_ESCAPE + ENV_ESCAPE)
        .replace(ENV_SEPARATOR, ENV_ESCAPE + ENV_SEPARATOR)
        for word in defn
    )


def _decode(value: str) -> list[str]:
    words: list[str] = []
    buf: list[str] = []
    chars = iter(value)
    pending: Optional[str] = None
    while True:
        c = pending if pending is not None else next(chars, None)
        pending = None
        if c is None:
            break
        if c == ENV_SEPARATOR:
            words.append("".join(buf))
            buf.clear()
        elif c == ENV_ESCAPE:
            nxt = next(chars, None)
            if nxt in (ENV_SEPARATOR, ENV_ESCAPE):
                buf.append(nxt)
            else:
                buf.append(c)
                pending = nxt
        else:
            buf.append(c)
    if buf:
        words.append("".join(buf))
    return words


class VarStore:
    """The table of dynamic variables.

    ``settor`` is called as ``settor(name, defn)`` whenever a variable other
    than ``*`` or ``0`` is assigned, and returns the value actually stored.
    """

    def __init__(self, settor: Optional[Settor] = None) -> None:
        self._settor = settor
        self._vars: dict[str, Variable] = {}
        self._noexport: set[str] = set()
        self._dirty = True
        self._rebound = True
        self._env: list[str] = []

    def _call_settor(self, name: str, defn: list) -> list:
        if self._settor is None or _is_special(name):
            return defn
        return list(self._settor(name, defn))

    def lookup(self, name: str, binding: Optional[Binding] = None) -> list:
        """The value of ``name``; numeric names index into ``$*``."""
        if _is_counting(name):
            args = self.lookup("*", binding)
            n = int(name)
            return [args[n - 1]] if 1 <= n <= len(args) else []
        validate_var(name)
        if binding is not None:
            for node in binding:
                if node.name == name:
                    return node.defn
        var = self._vars.get(name)
        return var.defn if var is not None else []

    def define(self, name: str, defn: Sequence[Any], binding: Optional[Binding] = None) -> None:
        """Assign ``defn`` to ``name``; an empty value removes the variable."""
        validate_var(name)
        defn = list(defn)
        if binding is not None:
            for node in binding:
                if node.name == name:
                    node.defn = defn
                    self._rebound = True
                    return
        defn = self._call_settor(name, defn)
        if self.is_exported(name):
            self._dirty = True
        var = self._vars.get(name)
        if var is not None:
            if defn:
                var.defn = defn
                var.env = None
                var.has_bindings = _has_bindings(defn)
                var.internal = False
            else:
                del self._vars[name]
        elif defn:
            self._vars[name] = Variable(defn, has_bindings=_has_bindings(defn))

    @contextmanager
    def dynamic(self, name: str, defn: Sequence[Any]) -> Iterator[None]:
        """Bind ``name`` to ``defn`` for the duration of the block."""
        validate_var(name)
        if self.is_exported(name):
            self._dirty = True
        new = self._call_settor(name, list(defn))
        saved = self._vars.get(name)
        if saved is None:
            old_defn: list = []
            old_flags = (False, False)
            self._vars[name] = Variable(new, has_bindings=_has_bindings(new))
        else:
            old_defn = saved.defn
            old_flags = (saved.has_bindings, saved.internal)
            saved.defn = new
            saved.env = None
            saved.has_bindings = _has_bindings(new)
            saved.internal = False
        try:
            yield
        finally:
            if self.is_exported(name):
                self._dirty = True
            restored = self._call_settor(name, old_defn)
            var = self._vars.get(name)
            if var is not None:
                if restored:
                    var.defn = restored
                    var.has_bindings, var.internal = old_flags
                    var.env = None
                else:
                    del self._vars[name]
            elif restored:
                self._vars[name] = Variable(
                    restored, has_bindings=old_flags[0], internal=old_flags[1]
                )

    def set_noexport(self, names: Sequence[str]) -> None:
        """Replace the set of variables kept out of the environment."""
        self._dirty = True
        self._noexport = {str(n) for n in names}

    def is_exported(self, name: str) -> bool:
        """Would ``name`` be placed in the environment?"""
        if _is_special(name):
            return False
        return name not in self._noexport

    def environment(self) -> list[str]:
        """The sorted ``name=value`` strings for exported variables."""
        if self._dirty or self._rebound:
            env = []
            for name in sorted(self._vars):
                var = self._vars[name]
                if not var.defn or var.internal or not self.is_exported(name):
                    continue
                if var.env is None or (self._rebound and var.has_bindings):
                    var.env = f"{name}={_encode(var.defn)}"
                env.append(var.env)
            self._env = sorted(env)
            self._dirty = False
            self._rebound = False
        return list(self._env)

    def list_vars(self, internal: bool = False) -> list[str]:
        """Sorted names of internal variables, or of the ordinary ones."""
        if internal:
            return sorted(n for n, v in self._vars.items() if v.internal)
        return sorted(
            n for n, v in self._vars.items() if not v.internal and not _is_special(n)
        )

    def hide_all(self) -> None:
        """Mark every current variable as internal."""
        for var in self._vars.values():
            var.internal = True

    def import_environ(self, environ: Mapping[str, str], protected: bool = False) -> None:
        """Load variables from an environment mapping.

        With ``protected``, functions and settors are not imported.
        """
        for name, value in environ.items():
            if protected and name.startswith(("fn-", "set-")):
                continue
            self.define(name, _decode(value))