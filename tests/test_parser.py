import pytest

from regfa.parser import (
    EPSILON,
    Character,
    MalformedExpression,
    Operator,
    RegexParser,
    RegexpParsingError,
    UnbalancedParentheses,
    insert_concatenation,
    merge_alphabets,
    postfix_to_string,
    to_postfix,
    tokenize,
)


@pytest.mark.parametrize(
    "pattern, expected",
    [
        ("a", "a"),
        ("ab", "ab."),
        ("abc", "ab.c."),
        ("a|b", "ab|"),
        ("a|b|c", "ab|c|"),
        ("ab|c", "ab.c|"),
        ("a|bc", "abc.|"),
        ("a*", "a*"),
        ("a**", "a**"),
        ("ab*", "ab*."),
        ("(ab)*", "ab.*"),
        ("a*b*", "a*b*."),
        ("(a|b)*abb", "ab|*a.b.b."),
        ("(a|b)(c|d)", "ab|cd|."),
        ("((a))", "a"),
        ("a(b|c)*d", "abc|*.d."),
        ("", ""),
    ],
)
def test_postfix(pattern, expected):
    assert postfix_to_string(to_postfix(pattern)) == expected, pattern


@pytest.mark.parametrize(
    "pattern, explicit",
    [
        ("ab", "a.b"),
        ("a(b)", "a.(b)"),
        ("(a)(b)", "(a).(b)"),
        ("a*b", "a*.b"),
        ("a*(b)", "a*.(b)"),
        ("a|b", "a|b"),
        ("(a|b)*c", "(a|b)*.c"),
    ],
)
def test_insert_concatenation(pattern, explicit):
    tokens = insert_concatenation(tokenize(pattern))
    assert postfix_to_string(token for _, token in tokens) == explicit


def test_every_unreserved_character_is_a_literal():
    assert to_postfix(".+? ") == [
        Character("."),
        Character("+"),
        Operator.CONCATENATION,
        Character("?"),
        Operator.CONCATENATION,
        Character(" "),
        Operator.CONCATENATION,
    ]


@pytest.mark.parametrize(
    "pattern, position",
    [(")", 0), ("a)", 1), ("(a))", 3), ("a|b)c", 3), ("(", 0), ("(a", 0), ("a(b(c)", 1)],
)
def test_unbalanced_parentheses(pattern, position):
    with pytest.raises(UnbalancedParentheses) as exc_info:
        to_postfix(pattern)
    assert exc_info.value.position == position
    assert str(exc_info.value).endswith(f"at position {position}")


def test_empty_group_is_malformed():
    with pytest.raises(MalformedExpression):
        to_postfix("a()")


def test_parsing_errors_share_a_base_class():
    assert issubclass(UnbalancedParentheses, RegexpParsingError)
    assert issubclass(MalformedExpression, RegexpParsingError)
    assert str(RegexpParsingError("bad")) == "bad"


def test_parser_postfix_is_a_copy():
    parser = RegexParser("ab")
    parser.postfix.clear()
    assert postfix_to_string(parser.postfix) == "ab."
    assert parser.regexp == "ab"


def test_character_model():
    assert Character("a") == Character("a")
    assert Character("a") < Character("b")
    assert Character("a") != EPSILON
    with pytest.raises(ValueError):
        Character("ab")


def test_merge_alphabets():
    a, b, c = Character("a"), Character("b"), Character("c")
    first, second = frozenset({a, b}), frozenset({b, c})
    assert merge_alphabets(first, second) == {a, b, c}
    assert first == {a, b} and second == {b, c}
    assert merge_alphabets() == frozenset()
