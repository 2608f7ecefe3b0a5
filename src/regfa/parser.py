from dataclasses import dataclass
from enum import Enum
from typing import Final, Iterable, Union

from more_itertools import pairwise


class RegexpParsingError(Exception):
    def __init__(self, message: str, position: int = -1) -> None:
        self.position = position
        super().__init__(message)

    def __str__(self) -> str:
        if self.position >= 0:
            return f"{super().__str__()} at position {self.position}"
        return super().__str__()


class UnbalancedParentheses(RegexpParsingError):
    ...


class MalformedExpression(RegexpParsingError):
    ...


@dataclass(frozen=True, slots=True, order=True)
class Character:
    """
    A single input symbol

    Examples
    --------
    >>> Character('a') == Character('a')
    True
    >>> sorted({Character('b'), Character('a')})
    [a, b]
    """

    char: str

    def __post_init__(self):
        if len(self.char) != 1:
            raise ValueError(f"expected a single character, got {self.char!r}")

    def __repr__(self):
        return f"{self.char}"


class Epsilon(Enum):
    """The label of a transition which consumes no input"""

    EPSILON = "ε"

    def __repr__(self):
        return self.value


EPSILON: Final = Epsilon.EPSILON

Label = Union[Character, Epsilon]
Alphabet = frozenset[Character]


def merge_alphabets(*alphabets: Iterable[Character]) -> Alphabet:
    """
    >>> sorted(merge_alphabets({Character('a')}, {Character('a'), Character('b')}))
    [a, b]
    """
    return frozenset().union(*alphabets)


class Operator(Enum):
    UNION = "|"
    CONCATENATION = "."
    KLEENE_STAR = "*"
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"

    def __repr__(self):
        return f"Op({self.value})"


Token = Union[Character, Operator]

RESERVED: Final[dict[str, Operator]] = {
    operator.value: operator
    for operator in (
        Operator.UNION,
        Operator.KLEENE_STAR,
        Operator.LEFT_PAREN,
        Operator.RIGHT_PAREN,
    )
}

PRECEDENCE: Final[dict[Operator, int]] = {
    Operator.UNION: 1,
    Operator.CONCATENATION: 2,  # implicit, inserted by the parser
    Operator.KLEENE_STAR: 3,
}


def ends_operand(token: Token) -> bool:
    return isinstance(token, Character) or token in (
        Operator.RIGHT_PAREN,
        Operator.KLEENE_STAR,
    )


def starts_operand(token: Token) -> bool:
    return isinstance(token, Character) or token is Operator.LEFT_PAREN


def tokenize(regexp: str) -> list[tuple[int, Token]]:
    """
    Split `regexp` into positioned tokens, every unreserved character is a literal

    Examples
    --------
    >>> tokenize('a.*')
    [(0, a), (1, .), (2, Op(*))]
    """
    return [
        (position, RESERVED[char] if char in RESERVED else Character(char))
        for position, char in enumerate(regexp)
    ]


def insert_concatenation(
    tokens: list[tuple[int, Token]]
) -> list[tuple[int, Token]]:
    """
    Make every juxtaposition of two expressions explicit

    Examples
    --------
    >>> [token for _, token in insert_concatenation(tokenize('a(b)*c'))]
    [a, Op(.), Op((), b, Op()), Op(*), Op(.), c]
    """
    if not tokens:
        return []
    explicit = [tokens[0]]
    for (_, previous), (position, token) in pairwise(tokens):
        if ends_operand(previous) and starts_operand(token):
            explicit.append((position, Operator.CONCATENATION))
        explicit.append((position, token))
    return explicit


class RegexParser:
    """
    Converts an infix regular expression into a postfix token sequence
    using the shunting-yard algorithm

    Supported syntax: literals, `|`, `*`, `(` and `)`. Concatenation is implicit.

    Examples
    --------
    >>> RegexParser('a|bc*').postfix
    [a, b, c, Op(*), Op(.), Op(|)]
    >>> RegexParser('').postfix
    []
    """

    def __init__(self, regexp: str):
        self._regexp = regexp
        self._postfix = self._to_postfix(insert_concatenation(tokenize(regexp)))

    @property
    def regexp(self) -> str:
        return self._regexp

    @property
    def postfix(self) -> list[Token]:
        return list(self._postfix)

    @staticmethod
    def _to_postfix(tokens: list[tuple[int, Token]]) -> list[Token]:
        output: list[Token] = []
        operators: list[tuple[int, Operator]] = []
        previous = None

        for position, token in tokens:
            if isinstance(token, Character):
                output.append(token)
            elif token is Operator.LEFT_PAREN:
                operators.append((position, token))
            elif token is Operator.RIGHT_PAREN:
                if previous is Operator.LEFT_PAREN:
                    raise MalformedExpression("empty group", position)
                while operators and operators[-1][1] is not Operator.LEFT_PAREN:
                    output.append(operators.pop()[1])
                if not operators:
                    raise UnbalancedParentheses("unmatched ')'", position)
                operators.pop()
            else:
                # all operators are left associative
                while (
                    operators
                    and operators[-1][1] is not Operator.LEFT_PAREN
                    and PRECEDENCE[operators[-1][1]] >= PRECEDENCE[token]
                ):
                    output.append(operators.pop()[1])
                operators.append((position, token))
            previous = token

        while operators:
            position, operator = operators.pop()
            if operator is Operator.LEFT_PAREN:
                raise UnbalancedParentheses("unmatched '('", position)
            output.append(operator)

        return output

    def __repr__(self):
        return (
            f"{self.__class__.__name__}"
            f"(regexp={self._regexp!r}, postfix={postfix_to_string(self._postfix)!r})"
        )


def to_postfix(regexp: str) -> list[Token]:
    return RegexParser(regexp).postfix


def postfix_to_string(postfix: Iterable[Token]) -> str:
    """
    >>> postfix_to_string(to_postfix('(a|b)*abb'))
    'ab|*a.b.b.'
    """
    return "".join(
        token.value if isinstance(token, Operator) else token.char
        for token in postfix
    )
