import pytest

from regfa.dfa import (
    DEAD_STATE_NAME,
    minimize,
    prune_unreachable,
    reachable_states,
    refine,
    subset_construction,
)
from regfa.fsm import Automaton, AutomatonKind, gen_state
from regfa.parser import Character
from regfa.thompson import compile_regexp

a, b = Character("a"), Character("b")


def dead_states(dfa: Automaton) -> list[int]:
    return [state for state in dfa.states if dfa.name(state) == DEAD_STATE_NAME]


@pytest.mark.parametrize(
    "pattern, n_states",
    [
        ("", 1),
        ("a", 3),
        ("a*", 1),
        ("a*b", 3),
        ("ab", 4),
        ("a|b", 3),
        ("(a|b)*", 1),
        ("(a|b)*abb", 4),
        ("(a|b)*a(a|b)", 4),
        ("a*|b*", 4),
        ("(aa)*", 2),
    ],
)
def test_minimal_state_counts(pattern, n_states):
    dfa = compile_regexp(pattern).to_dfa()
    minimal = dfa.minimize()
    assert minimal.state_count() == n_states
    assert minimal.state_count() <= dfa.state_count()
    assert minimize(minimal).state_count() == minimal.state_count()


def test_subset_construction_is_total():
    nfa = compile_regexp("a(a|b)")
    dfa = subset_construction(nfa)
    assert dfa.kind is AutomatonKind.DETERMINISTIC
    for state in dfa.states:
        for symbol in dfa.alphabet:
            assert len(dfa.transition(state, symbol)) == 1
    (dead,) = dead_states(dfa)
    assert dead not in dfa.accepting_states
    assert all(dfa.transition(dead, symbol) == {dead} for symbol in dfa.alphabet)


def test_no_dead_state_when_every_move_succeeds():
    dfa = compile_regexp("(a|b)*").to_dfa()
    assert dead_states(dfa) == []


def test_subset_labels_name_nfa_states():
    nfa = compile_regexp("a")
    dfa = nfa.to_dfa()
    start_label = dfa.name(dfa.start_state)
    assert start_label == "{" + str(nfa.start_state) + "}"


def test_dfa_accepting_states_intersect_nfa_accepting():
    nfa = compile_regexp("a*")
    dfa = nfa.to_dfa()
    assert dfa.start_state in dfa.accepting_states


def test_subset_construction_of_a_dfa():
    dfa = compile_regexp("a|ab").to_dfa()
    again = dfa.to_dfa()
    for text in ["", "a", "ab", "b", "abb"]:
        assert dfa.accepts(text) == again.accepts(text)


def test_empty_language():
    dfa = Automaton.empty().concatenate(Automaton.symbol("a")).to_dfa()
    minimal = dfa.minimize()
    assert minimal.state_count() == 1
    assert minimal.accepting_states == frozenset()
    assert not minimal.accepts("a")
    assert not minimal.accepts("")


def test_sigma_star_keeps_dead_state_separate():
    # once past the leading `a` everything is accepted, only a leading `b` is dead
    dfa = compile_regexp("a(a|b)*").to_dfa()
    minimal = dfa.minimize()
    assert minimal.state_count() == 3
    assert len(minimal.accepting_states) == 1
    rejecting = minimal.states - minimal.accepting_states
    assert minimal.start_state in rejecting


def _unreachable_dfa() -> tuple[Automaton, int]:
    q0, q1, q2 = gen_state(), gen_state(), gen_state()
    transitions = {
        (q0, a): {q1},
        (q0, b): {q0},
        (q1, a): {q1},
        (q1, b): {q0},
        (q2, a): {q2},
        (q2, b): {q2},
    }
    return (
        Automaton(
            {a, b}, {q0, q1, q2}, transitions, q0, {q1, q2}, AutomatonKind.DETERMINISTIC
        ),
        q2,
    )


def test_reachability_pruning():
    dfa, unreachable = _unreachable_dfa()
    assert unreachable not in reachable_states(dfa)
    pruned = prune_unreachable(dfa)
    assert pruned.states == dfa.states - {unreachable}
    assert unreachable not in pruned.accepting_states
    assert prune_unreachable(pruned) is pruned
    minimal = minimize(dfa)
    assert minimal.state_count() == 2
    assert minimal.accepts("ba") and not minimal.accepts("ab")


def test_refine_merges_equivalent_states():
    # q1 and q2 both accept and loop back on everything
    q0, q1, q2 = gen_state(), gen_state(), gen_state()
    dfa = Automaton(
        {a},
        {q0, q1, q2},
        {(q0, a): {q1}, (q1, a): {q2}, (q2, a): {q1}},
        q0,
        {q1, q2},
        AutomatonKind.DETERMINISTIC,
    )
    assert sorted(map(sorted, refine(dfa))) == [[q0], [q1, q2]]
    assert minimize(dfa).state_count() == 2


def test_minimize_nfa_determinizes_first():
    minimal = compile_regexp("(a|b)*abb").minimize()
    assert minimal.is_deterministic
    assert minimal.state_count() == 4


def test_dfa_composition_stays_deterministic():
    first = compile_regexp("a").to_dfa()
    second = compile_regexp("b").to_dfa()
    union = first.union(second)
    assert union.is_deterministic
    assert union.accepts("a") and union.accepts("b") and not union.accepts("ab")
    concatenation = first.concatenate(second)
    assert concatenation.is_deterministic
    assert concatenation.accepts("ab") and not concatenation.accepts("a")
    star = first.star()
    assert star.is_deterministic
    assert star.accepts("") and star.accepts("aaa")
    assert first.accepts("a") and not first.accepts("aa")
