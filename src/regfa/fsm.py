import json
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from itertools import count
from operator import or_
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, NamedTuple, Union

import graphviz

from regfa.parser import (
    EPSILON,
    Alphabet,
    Character,
    Epsilon,
    Label,
    merge_alphabets,
)

State = int

counter = count(0)


def gen_state() -> State:
    return next(counter)


class InvariantViolation(Exception):
    """An automaton was assembled in a way that breaks its structural invariants"""


class Transition(NamedTuple):
    start: State
    label: Label
    end: State


class AutomatonKind(Enum):
    NONDETERMINISTIC = "NFA"
    DETERMINISTIC = "DFA"


TransitionTable = Mapping[tuple[State, Label], frozenset[State]]


def label_key(label: Label) -> str:
    # epsilon sorts before every symbol
    return "" if label is EPSILON else label.char


@dataclass(frozen=True, slots=True, eq=False)
class Automaton:
    """Formally, an NFA is a 5-tuple (Q, Σ, q0, T, δ) where
        • Q is finite set of states;
        • Σ is alphabet of input symbols;
        • q0 is start state;
        • T is subset of Q giving the ``accept`` states;
        and
        • δ is the transition function.
    The transition function maps Q × (Σ ∪ {ε}) to subsets of Q.

    A deterministic automaton uses the same representation, tagged with
    ``AutomatonKind.DETERMINISTIC``: it has no ε transitions and every pair in
    Q × Σ maps to exactly one state.

    Automata are never mutated once built. Every composition allocates fresh
    containers, so an automaton can be reused in any number of compositions.

    Examples
    --------
    >>> a = Automaton.symbol('a')
    >>> a.accepts('a'), a.accepts('aa'), a.accepts('')
    (True, False, False)
    >>> aa = a.concatenate(a)
    >>> aa.accepts('aa'), a.accepts('a')
    (True, True)
    """

    alphabet: Alphabet
    states: frozenset[State]
    transitions: TransitionTable
    start_state: State
    accepting_states: frozenset[State]
    kind: AutomatonKind = AutomatonKind.NONDETERMINISTIC
    labels: Mapping[State, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "alphabet", frozenset(self.alphabet))
        object.__setattr__(self, "states", frozenset(self.states))
        object.__setattr__(
            self,
            "transitions",
            MappingProxyType(
                {key: frozenset(ends) for key, ends in self.transitions.items() if ends}
            ),
        )
        object.__setattr__(self, "accepting_states", frozenset(self.accepting_states))
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))
        self.validate()

    @staticmethod
    def symbol(char: Union[str, Character]) -> "Automaton":
        symbol = char if isinstance(char, Character) else Character(char)
        start, end = gen_state(), gen_state()
        return Automaton(
            frozenset({symbol}),
            frozenset({start, end}),
            {(start, symbol): frozenset({end})},
            start,
            frozenset({end}),
        )

    @staticmethod
    def epsilon() -> "Automaton":
        """An automaton accepting only the empty string"""
        state = gen_state()
        return Automaton(frozenset(), frozenset({state}), {}, state, frozenset({state}))

    @staticmethod
    def empty() -> "Automaton":
        """An automaton accepting nothing at all"""
        state = gen_state()
        return Automaton(frozenset(), frozenset({state}), {}, state, frozenset())

    @property
    def is_deterministic(self) -> bool:
        return self.kind is AutomatonKind.DETERMINISTIC

    def validate(self) -> None:
        if self.start_state not in self.states:
            raise InvariantViolation(
                f"start state {self.start_state} is not one of the states"
            )
        if strays := self.accepting_states - self.states:
            raise InvariantViolation(
                f"accepting states {sorted(strays)} are not in the state set"
            )
        for (start, label), ends in self.transitions.items():
            if start not in self.states or not ends <= self.states:
                raise InvariantViolation(
                    f"transition {start} --{label!r}--> {sorted(ends)} "
                    f"references an unknown state"
                )
            if label is not EPSILON and label not in self.alphabet:
                raise InvariantViolation(f"symbol {label!r} is not in the alphabet")
        if self.is_deterministic:
            self._validate_deterministic()

    def _validate_deterministic(self) -> None:
        for state in self.states:
            if (state, EPSILON) in self.transitions:
                raise InvariantViolation(
                    f"deterministic automaton has an ε transition from {state}"
                )
            for symbol in self.alphabet:
                if len(self.transition(state, symbol)) != 1:
                    raise InvariantViolation(
                        f"deterministic automaton needs exactly one transition "
                        f"from {state} on {symbol!r}"
                    )

    def transition(self, state: State, label: Label) -> frozenset[State]:
        return self.transitions.get((state, label), frozenset())

    def epsilon_closure(self, states: Iterable[State]) -> frozenset[State]:
        """
        This is the set of all the nodes which can be reached by following epsilon labeled edges
        This is done here using a depth first search

        https://castle.eiu.edu/~mathcs/mat4885/index/Webview/examples/epsilon-closure.pdf
        """

        seen = set()
        stack = list(states)

        while stack:
            if (state := stack.pop()) in seen:
                continue

            seen.add(state)
            stack.extend(self.transition(state, EPSILON))

        return frozenset(seen)

    def move(self, states: Iterable[State], symbol: Character) -> frozenset[State]:
        return reduce(
            or_, (self.transition(state, symbol) for state in states), frozenset()
        )

    def accepts(self, text: str) -> bool:
        """
        Check whether the whole of `text` is in the language of this automaton
        Characters outside the alphabet reject immediately
        """
        if self.is_deterministic:
            return self._accepts_deterministic(text)

        current = self.epsilon_closure((self.start_state,))
        for char in text:
            if (symbol := Character(char)) not in self.alphabet:
                return False
            if not (current := self.epsilon_closure(self.move(current, symbol))):
                return False
        return not current.isdisjoint(self.accepting_states)

    def _accepts_deterministic(self, text: str) -> bool:
        state = self.start_state
        for char in text:
            if (symbol := Character(char)) not in self.alphabet:
                return False
            (state,) = self.transition(state, symbol)
        return state in self.accepting_states

    def relabel(self) -> "Automaton":
        """Return a copy of this automaton with freshly allocated states"""
        mapping = {state: gen_state() for state in sorted(self.states)}
        return Automaton(
            self.alphabet,
            frozenset(mapping.values()),
            {
                (mapping[start], label): frozenset(mapping[end] for end in ends)
                for (start, label), ends in self.transitions.items()
            },
            mapping[self.start_state],
            frozenset(mapping[state] for state in self.accepting_states),
            self.kind,
            {mapping[state]: name for state, name in self.labels.items()},
        )

    def _disjoint(self, other: "Automaton") -> "Automaton":
        if self.states.isdisjoint(other.states):
            return other
        return other.relabel()

    def _conform(self, result: "Automaton") -> "Automaton":
        return result.to_dfa() if self.is_deterministic else result

    def union(self, other: "Automaton") -> "Automaton":
        other = self._disjoint(other)
        start = gen_state()
        transitions = {**self.transitions, **other.transitions}
        transitions[(start, EPSILON)] = frozenset(
            {self.start_state, other.start_state}
        )
        return self._conform(
            Automaton(
                merge_alphabets(self.alphabet, other.alphabet),
                self.states | other.states | {start},
                transitions,
                start,
                self.accepting_states | other.accepting_states,
            )
        )

    def concatenate(self, other: "Automaton") -> "Automaton":
        other = self._disjoint(other)
        transitions = {**self.transitions, **other.transitions}
        for state in self.accepting_states:
            transitions[(state, EPSILON)] = self.transition(state, EPSILON) | {
                other.start_state
            }
        return self._conform(
            Automaton(
                merge_alphabets(self.alphabet, other.alphabet),
                self.states | other.states,
                transitions,
                self.start_state,
                other.accepting_states,
            )
        )

    def star(self) -> "Automaton":
        # the new start has no incoming edges, so marking it accepting
        # cannot make a partial pass through the loop accepting
        start = gen_state()
        transitions = dict(self.transitions)
        transitions[(start, EPSILON)] = frozenset({self.start_state})
        for state in self.accepting_states:
            transitions[(state, EPSILON)] = self.transition(state, EPSILON) | {
                self.start_state
            }
        return self._conform(
            Automaton(
                self.alphabet,
                self.states | {start},
                transitions,
                start,
                self.accepting_states | {start},
            )
        )

    def to_dfa(self) -> "Automaton":
        from regfa.dfa import subset_construction

        return subset_construction(self)

    def minimize(self) -> "Automaton":
        from regfa.dfa import minimize

        return minimize(self)

    def state_count(self) -> int:
        return len(self.states)

    def n_transitions(self) -> int:
        return sum(len(ends) for ends in self.transitions.values())

    def all_transitions(self) -> Iterator[Transition]:
        for start, label in sorted(
            self.transitions, key=lambda key: (key[0], label_key(key[1]))
        ):
            for end in sorted(self.transitions[(start, label)]):
                yield Transition(start, label, end)

    def name(self, state: State) -> str:
        return self.labels.get(state, str(state))

    def __str__(self):
        lines = [
            f"{self.kind.value} {{",
            f"  alphabet: {{{', '.join(map(repr, sorted(self.alphabet)))}}}",
            f"  states: [{', '.join(map(self.name, sorted(self.states)))}]",
            f"  start state: {self.name(self.start_state)}",
            f"  accepting states: "
            f"[{', '.join(map(self.name, sorted(self.accepting_states)))}]",
            "  transitions:",
        ]
        lines.extend(
            f"    {self.name(start)} --{label!r}--> {self.name(end)}"
            for start, label, end in self.all_transitions()
        )
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self):
        return (
            f"{self.kind.value}(states={tuple(sorted(self.states))}, "
            f"symbols={sorted(self.alphabet)}, "
            f"start_state={self.start_state}, "
            f"accept_states={tuple(sorted(self.accepting_states))})"
        )

    def to_json(self) -> str:
        class CustomEncoder(json.JSONEncoder):
            def default(self, o: Any) -> Any:
                if isinstance(o, (Character, Epsilon)):
                    return repr(o)
                if isinstance(o, (set, frozenset)):
                    return sorted(o)
                return json.JSONEncoder.default(self, o)

        return json.dumps(
            {
                "kind": self.kind.value,
                "states": self.states,
                "symbols": sorted(self.alphabet),
                "start_state": self.start_state,
                "accepting_states": self.accepting_states,
                "transitions": list(self.all_transitions()),
            },
            cls=CustomEncoder,
        )

    def graph(self) -> graphviz.Digraph:
        dot = graphviz.Digraph(
            f"{self.kind.value} " + ", ".join(map(self.name, sorted(self.states))),
            format="pdf",
            engine="dot",
        )
        dot.attr("graph", rankdir="LR")
        dot.attr("node", fontname="verdana")
        dot.attr("edge", fontname="verdana")

        for state in sorted(self.states):
            dot.node(
                str(state),
                label=self.name(state),
                color="green" if state == self.start_state else "",
                shape="doublecircle" if state in self.accepting_states else "circle",
                style="filled",
            )

        for start, label, end in self.all_transitions():
            if label is EPSILON:
                dot.edge(str(start), str(end), label=repr(label), style="dotted")
            else:
                dot.edge(str(start), str(end), label=repr(label), color="black")

        dot.node("start", shape="none")
        dot.edge("start", str(self.start_state), arrowhead="vee")
        return dot
