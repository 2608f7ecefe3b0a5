import logging
from collections import defaultdict, deque
from typing import Iterable, Optional

from more_itertools import first_true

from regfa.fsm import Automaton, AutomatonKind, State, gen_state
from regfa.parser import Character

logger = logging.getLogger(__name__)

Block = frozenset[State]

DEAD_STATE_NAME = "∅"


def subset_name(states: Iterable[State]) -> str:
    """
    >>> subset_name({3, 1, 2})
    '{1,2,3}'
    """
    return "{" + ",".join(map(str, sorted(states))) + "}"


def subset_construction(nfa: Automaton) -> Automaton:
    """
    Convert `nfa` into an equivalent total DFA

    Every DFA state stands for one ε-closed set of NFA states. Moves which lead to
    the empty set all go to a single non-accepting dead state which loops on every
    symbol.

    Examples
    --------
    >>> from regfa.thompson import compile_regexp
    >>> dfa = subset_construction(compile_regexp('a*b'))
    >>> dfa.is_deterministic, dfa.state_count()
    (True, 4)
    >>> minimize(dfa).state_count()
    3
    >>> dfa.accepts('aab'), dfa.accepts('ba')
    (True, False)
    """
    symbols = sorted(nfa.alphabet)
    start_closure = nfa.epsilon_closure((nfa.start_state,))

    dfa_states: dict[frozenset[State], State] = {start_closure: gen_state()}
    worklist = deque([start_closure])
    transitions: dict[tuple[State, Character], frozenset[State]] = {}
    dead_state: Optional[State] = None

    while worklist:
        closure = worklist.popleft()
        source = dfa_states[closure]
        # next we want to see which states are reachable from each of the states in the epsilon closure
        for symbol in symbols:
            if not (move_closure := nfa.epsilon_closure(nfa.move(closure, symbol))):
                if dead_state is None:
                    dead_state = gen_state()
                transitions[(source, symbol)] = frozenset({dead_state})
                continue
            if move_closure not in dfa_states:
                dfa_states[move_closure] = gen_state()
                worklist.append(move_closure)
            transitions[(source, symbol)] = frozenset({dfa_states[move_closure]})

    states = set(dfa_states.values())
    labels = {state: subset_name(closure) for closure, state in dfa_states.items()}
    if dead_state is not None:
        states.add(dead_state)
        labels[dead_state] = DEAD_STATE_NAME
        for symbol in symbols:
            transitions[(dead_state, symbol)] = frozenset({dead_state})

    accepting = frozenset(
        state
        for closure, state in dfa_states.items()
        if not closure.isdisjoint(nfa.accepting_states)
    )

    logger.debug(
        "subset construction: %d NFA states -> %d DFA states",
        nfa.state_count(),
        len(states),
    )

    return Automaton(
        nfa.alphabet,
        frozenset(states),
        transitions,
        dfa_states[start_closure],
        accepting,
        AutomatonKind.DETERMINISTIC,
        labels,
    )


def reachable_states(dfa: Automaton) -> frozenset[State]:
    seen = {dfa.start_state}
    queue = deque([dfa.start_state])

    while queue:
        state = queue.popleft()
        for symbol in dfa.alphabet:
            for end in dfa.transition(state, symbol):
                if end not in seen:
                    seen.add(end)
                    queue.append(end)

    return frozenset(seen)


def prune_unreachable(dfa: Automaton) -> Automaton:
    if (reachable := reachable_states(dfa)) == dfa.states:
        return dfa

    logger.debug("pruning %d unreachable states", len(dfa.states - reachable))
    return Automaton(
        dfa.alphabet,
        reachable,
        {
            (start, label): ends
            for (start, label), ends in dfa.transitions.items()
            if start in reachable
        },
        dfa.start_state,
        dfa.accepting_states & reachable,
        dfa.kind,
        {state: name for state, name in dfa.labels.items() if state in reachable},
    )


def _split_once(
    dfa: Automaton, partition: list[Block], symbols: list[Character]
) -> Optional[tuple[int, list[Block]]]:
    block_of = {state: index for index, block in enumerate(partition) for state in block}

    for index, block in enumerate(partition):
        if len(block) < 2:
            continue
        for symbol in symbols:
            signatures: defaultdict[int, set[State]] = defaultdict(set)
            for state in block:
                (end,) = dfa.transition(state, symbol)
                signatures[block_of[end]].add(state)
            if len(signatures) > 1:
                return index, sorted(map(frozenset, signatures.values()), key=min)
    return None


def refine(dfa: Automaton) -> list[Block]:
    """
    Group the states of a total `dfa` into blocks of indistinguishable states

    Starts from the accepting/non-accepting split and keeps splitting a block
    whenever its members disagree on the block some symbol leads to.
    """
    symbols = sorted(dfa.alphabet)
    partition: list[Block] = [
        block
        for block in (dfa.accepting_states, dfa.states - dfa.accepting_states)
        if block
    ]

    while (split := _split_once(dfa, partition, symbols)) is not None:
        index, blocks = split
        partition[index : index + 1] = blocks

    return partition


def minimize(dfa: Automaton) -> Automaton:
    """
    Return the DFA with the fewest states recognizing the same language as `dfa`

    Examples
    --------
    >>> from regfa.thompson import compile_regexp
    >>> minimal = minimize(compile_regexp('(a|b)*abb').to_dfa())
    >>> minimal.state_count()
    4
    >>> minimal.accepts('babb'), minimal.accepts('abba')
    (True, False)
    """
    if not dfa.is_deterministic:
        dfa = subset_construction(dfa)

    dfa = prune_unreachable(dfa)
    partition = refine(dfa)

    new_states = {block: gen_state() for block in partition}
    block_state = {state: new_states[block] for block in partition for state in block}

    transitions: dict[tuple[State, Character], frozenset[State]] = {}
    for block, new_state in new_states.items():
        # all members of a settled block agree on where each symbol leads
        representative = min(block)
        for symbol in dfa.alphabet:
            (end,) = dfa.transition(representative, symbol)
            transitions[(new_state, symbol)] = frozenset({block_state[end]})

    start_block = first_true(partition, pred=lambda block: dfa.start_state in block)

    logger.debug(
        "minimization: %d DFA states -> %d states", dfa.state_count(), len(partition)
    )

    return Automaton(
        dfa.alphabet,
        frozenset(new_states.values()),
        transitions,
        new_states[start_block],
        frozenset(
            new_state
            for block, new_state in new_states.items()
            if not block.isdisjoint(dfa.accepting_states)
        ),
        AutomatonKind.DETERMINISTIC,
        {new_state: subset_name(block) for block, new_state in new_states.items()},
    )
