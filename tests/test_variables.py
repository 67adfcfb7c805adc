import pytest

from xscore.terms import XsError
from xscore.variables import Binding, VarStore, validate_var


def test_validate_rejects_empty_and_numbers():
    with pytest.raises(XsError, match="zero-length variable name"):
        validate_var("")
    with pytest.raises(XsError, match="is a number"):
        validate_var("12")


def test_validate_accepts_zero_and_names():
    validate_var("0")
    validate_var("path")
    store = VarStore()
    store.define("0", ["prog"])
    assert store.lookup("0") == ["prog"]


def test_define_and_lookup():
    store = VarStore()
    store.define("x", ["a", "b"])
    assert store.lookup("x") == ["a", "b"]
    assert store.lookup("missing") == []


def test_empty_definition_removes():
    store = VarStore()
    store.define("x", ["a"])
    store.define("x", [])
    assert store.lookup("x") == []
    assert "x" not in store.list_vars()


def test_binding_takes_precedence_and_is_updated():
    store = VarStore()
    store.define("x", ["global"])
    binding = Binding("x", ["local"], Binding("y", ["why"]))
    assert store.lookup("x", binding) == ["local"]
    store.define("y", ["new"], binding)
    assert binding.next.defn == ["new"]
    assert store.lookup("y") == []


def test_counting_names_index_args():
    store = VarStore()
    store.define("*", ["a", "b", "c"])
    assert store.lookup("2") == ["b"]
    assert store.lookup("4") == []


def test_dynamic_restores_previous_value():
    store = VarStore()
    store.define("x", ["old"])
    with store.dynamic("x", ["new"]):
        assert store.lookup("x") == ["new"]
    assert store.lookup("x") == ["old"]


def test_dynamic_removes_new_variable_even_on_error():
    store = VarStore()
    with pytest.raises(RuntimeError):
        with store.dynamic("tmp", ["v"]):
            assert store.lookup("tmp") == ["v"]
            raise RuntimeError
    assert store.lookup("tmp") == []


def test_settor_transforms_value_but_not_special():
    calls = []

    def settor(name, defn):
        calls.append(name)
        return [w.upper() for w in defn]

    store = VarStore(settor)
    store.define("x", ["a"])
    store.define("*", ["b"])
    assert store.lookup("x") == ["A"]
    assert store.lookup("*") == ["b"]
    assert calls == ["x"]


def test_export_rules():
    store = VarStore()
    assert store.is_exported("x")
    assert not store.is_exported("*")
    store.set_noexport(["x"])
    assert not store.is_exported("x")
    assert store.is_exported("y")


def test_environment_contents_and_order():
    store = VarStore()
    store.define("b", ["1"])
    store.define("a", ["x", "y"])
    store.define("*", ["args"])
    store.set_noexport(["b"])
    assert store.environment() == ["a=x\x01y"]


def test_environment_round_trip_with_escapes():
    store = VarStore()
    words = ["plain", "has\x01sep", "has\x02esc", ""]
    store.define("v", words + ["end"])
    entry = store.environment()[0]
    name, value = entry.split("=", 1)
    other = VarStore()
    other.import_environ({name: value})
    assert other.lookup("v") == words + ["end"]


def test_environment_refreshes_after_change():
    store = VarStore()
    store.define("a", ["1"])
    first = store.environment()
    store.define("a", ["2"])
    assert store.environment() != first
    assert store.environment() == ["a=2"]


def test_list_vars_and_hide_all():
    store = VarStore()
    store.define("a", ["1"])
    store.define("*", ["x"])
    assert store.list_vars() == ["a"]
    store.hide_all()
    store.define("b", ["2"])
    assert store.list_vars() == ["b"]
    assert store.list_vars(True) == ["*", "a"]
    assert "a=1" not in store.environment()


def test_import_protected_skips_functions():
    store = VarStore()
    store.import_environ({"fn-f": "body", "set-x": "s", "HOME": "/home/u"}, True)
    assert store.lookup("fn-f") == []
    assert store.lookup("set-x") == []
    assert store.lookup("HOME") == ["/home/u"]
    store.import_environ({"fn-f": "body"}, False)
    assert store.lookup("fn-f") == ["body"]