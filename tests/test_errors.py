import pytest

from oasfilter.errors import ParseError, ParseErrorKind


def test_message_without_path():
    err = ParseError(
        kind=ParseErrorKind.UNSUPPORTED_FORMAT,
        reason='unsupported content type "text/csv"',
    )
    assert str(err) == 'unsupported content type "text/csv"'


def test_message_with_path_and_cause_chain():
    inner = ParseError(
        kind=ParseErrorKind.INVALID_FORMAT,
        value="notAnInt",
        reason="an invalid integer",
        cause=ValueError("bad syntax"),
    )
    outer = ParseError(path=[1], cause=inner)
    assert str(outer) == "path 1: value notAnInt: an invalid integer: bad syntax"


def test_path_puts_inner_positions_first():
    inner = ParseError(kind=ParseErrorKind.INVALID_FORMAT, value="x", path=["a"])
    outer = ParseError(path=[2], cause=inner)
    assert outer.path() == ["a", 2]
    assert str(outer) == "path a.2: value x"


def test_path_empty_when_no_positions():
    err = ParseError(kind=ParseErrorKind.INVALID_FORMAT, value="foo")
    assert err.path() == []


def test_root_cause_is_innermost_non_parse_error():
    root = ValueError("root")
    err = ParseError(path=[0], cause=ParseError(path=["p"], cause=root))
    assert err.root_cause() is root


def test_root_cause_none_without_cause():
    err = ParseError(path=[0], cause=ParseError(kind=ParseErrorKind.INVALID_FORMAT))
    assert err.root_cause() is None


def test_kind_defaults_to_other_and_is_coerced():
    assert ParseError().kind is ParseErrorKind.OTHER
    assert ParseError(kind=2).kind is ParseErrorKind.INVALID_FORMAT


def test_empty_error_message():
    assert str(ParseError()) == ""


def test_value_and_message_survive_raising():
    err = ParseError(kind=ParseErrorKind.INVALID_FORMAT, value="v", reason="r")
    assert err.value == "v"
    assert str(err) == "value v: r"
    with pytest.raises(ParseError, match="^value v: r$"):
        raise err