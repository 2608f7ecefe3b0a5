import logging
from typing import Iterable

from regfa.fsm import Automaton
from regfa.parser import (
    Character,
    MalformedExpression,
    Operator,
    RegexParser,
    Token,
    postfix_to_string,
)
from regfa.utils import RegexFlag

logger = logging.getLogger(__name__)


def _pop(stack: list[Automaton], operator: Operator) -> Automaton:
    if not stack:
        raise MalformedExpression(f"missing operand for {operator.value!r}")
    return stack.pop()


def build(postfix: Iterable[Token]) -> Automaton:
    """
    Thompson's construction over a postfix token sequence

    Every literal pushes a fresh two-state fragment, every operator pops its
    operands and pushes their composition. The empty sequence denotes the
    language holding only the empty string.

    Examples
    --------
    >>> from regfa.parser import to_postfix
    >>> nfa = build(to_postfix('a|b'))
    >>> nfa.accepts('a'), nfa.accepts('b'), nfa.accepts('ab')
    (True, True, False)
    >>> build([]).accepts('')
    True
    """
    stack: list[Automaton] = []

    for token in postfix:
        if isinstance(token, Character):
            stack.append(Automaton.symbol(token))
            continue

        match token:
            case Operator.KLEENE_STAR:
                stack.append(_pop(stack, token).star())
            case Operator.CONCATENATION:
                second, first = _pop(stack, token), _pop(stack, token)
                stack.append(first.concatenate(second))
            case Operator.UNION:
                upper, lower = _pop(stack, token), _pop(stack, token)
                stack.append(lower.union(upper))
            case _:
                raise MalformedExpression(f"unexpected token {token!r} in postfix")

    if not stack:
        return Automaton.epsilon()
    if len(stack) > 1:
        raise MalformedExpression(
            f"expected a single automaton after construction, got {len(stack)}"
        )
    return stack.pop()


def compile_regexp(regexp: str, flags: RegexFlag = RegexFlag.NOFLAG) -> Automaton:
    """
    Parse `regexp` and build the automaton selected by `flags`

    Examples
    --------
    >>> compile_regexp('ab*').is_deterministic
    False
    >>> compile_regexp('ab*', RegexFlag.MINIMIZE).state_count()
    3
    """
    parser = RegexParser(regexp)
    automaton = build(parser.postfix)
    if flags.debug():
        logger.debug(
            "%r: postfix %r, NFA with %d states and %d transitions",
            regexp,
            postfix_to_string(parser.postfix),
            automaton.state_count(),
            automaton.n_transitions(),
        )

    if flags.should_determinize():
        automaton = automaton.to_dfa()
        if flags.debug():
            logger.debug("%r: DFA with %d states", regexp, automaton.state_count())

    if flags.should_minimize():
        automaton = automaton.minimize()
        if flags.debug():
            logger.debug(
                "%r: minimal DFA with %d states", regexp, automaton.state_count()
            )

    return automaton
