import pathlib

import pytest

from hypothesis import given, settings
from hypothesis.strategies import data, sampled_from

from cfgkit import bnf
from cfgkit.grammar import END_OF_INPUT, EPSILON, Cfg
from cfgkit.ll1 import generate_table
from cfgkit.runtime import (
    Accept,
    Expand,
    Match,
    NoApplicableRule,
    Parser,
    UnexpectedToken,
    parse,
)

EXAMPLES = pathlib.Path(__file__).parent.parent / "examples"


def test_parse_canonical(canonical):
    g = canonical
    table = generate_table(g.cfg.freeze())

    assert Parser(table).parse([g.e]) == [g.rs, g.ra1, g.rb, g.rc1]
    assert parse(table, [g.d, g.e, g.f]) == [g.rs, g.ra2, g.rb, g.rc2]


def test_steps_canonical(canonical):
    g = canonical
    table = generate_table(g.cfg.freeze())

    assert list(Parser(table).steps([g.d, g.e])) == [
        Expand(g.S, g.rs),
        Expand(g.A, g.ra2),
        Match(g.d, 0),
        Expand(g.B, g.rb),
        Match(g.e, 1),
        Expand(g.C, g.rc1),
        Accept(),
    ]


def test_unexpected_token(canonical):
    g = canonical
    parser = Parser(generate_table(g.cfg.freeze()))

    # Trailing input after a complete parse.
    with pytest.raises(UnexpectedToken) as exc:
        parser.parse([g.e, g.f, g.f])
    assert exc.value.expected == END_OF_INPUT
    assert exc.value.found == g.f
    assert exc.value.position == 2


def test_no_applicable_rule(canonical):
    g = canonical
    parser = Parser(generate_table(g.cfg.freeze()))

    with pytest.raises(NoApplicableRule) as exc:
        parser.parse([g.f])
    assert exc.value.nonterminal == g.S
    assert exc.value.found == g.f
    assert exc.value.position == 0

    # Ran out of input where B was required.
    with pytest.raises(NoApplicableRule) as exc:
        parser.parse([g.d])
    assert exc.value.nonterminal == g.B
    assert exc.value.found == END_OF_INPUT
    assert exc.value.position == 1


def test_terminal_mismatch():
    cfg = Cfg()
    s = cfg.add_nonterminal()
    x = cfg.add_terminal()
    y = cfg.add_terminal()
    cfg.set_start(cfg.add_rule(s, [x, y]))

    parser = Parser(generate_table(cfg.freeze()))
    with pytest.raises(UnexpectedToken) as exc:
        parser.parse([x, x])
    assert exc.value.expected == y
    assert exc.value.found == x
    assert exc.value.position == 1


def test_tokens_must_be_terminals(canonical):
    g = canonical
    parser = Parser(generate_table(g.cfg.freeze()))
    with pytest.raises(ValueError):
        parser.parse([g.S])
    with pytest.raises(ValueError):
        parser.parse([EPSILON])
    with pytest.raises(ValueError):
        parser.parse([g.e, END_OF_INPUT])


def test_epsilon_placeholders_are_skipped():
    cfg = Cfg()
    s = cfg.add_nonterminal()
    a = cfg.add_nonterminal()
    x = cfg.add_terminal()

    start = cfg.add_rule(s, [a, x])
    empty = cfg.add_rule(a, [EPSILON])
    cfg.set_start(start)

    parser = Parser(generate_table(cfg.freeze()))
    assert parser.parse([x]) == [start, empty]


def test_parse_arith():
    notation = bnf.load(EXAMPLES / "arith.g")
    grammar = notation.grammar.freeze()
    parser = Parser(generate_table(grammar))

    derivation = parser.parse(notation.tokenize("i+i*i"))
    assert notation.format_derivation(grammar, derivation) == [
        "E -> T X",
        "T -> F Y",
        "F -> i",
        "Y -> ε",
        "X -> + T X",
        "T -> F Y",
        "F -> i",
        "Y -> * F Y",
        "F -> i",
        "Y -> ε",
        "X -> ε",
    ]

    with pytest.raises(NoApplicableRule):
        parser.parse(notation.tokenize("i+"))
    with pytest.raises(UnexpectedToken):
        parser.parse(notation.tokenize("(i"))


def test_derivation_is_leftmost():
    """Replaying the derivation, always on the leftmost nonterminal, gets us
    back to the input.
    """
    notation = bnf.load(EXAMPLES / "arith.g")
    grammar = notation.grammar.freeze()
    tokens = notation.tokenize("(i+i)*i")
    derivation = Parser(generate_table(grammar)).parse(tokens)

    form = [grammar.start_symbol]
    for rule in derivation:
        lhs, rhs = grammar.get_rule(rule)
        position = next(i for i, s in enumerate(form) if s.is_nonterminal)
        assert form[position] == lhs
        form[position : position + 1] = list(rhs)

    assert form == tokens


###############################################################################
# Round trips
###############################################################################


def random_sentence(choose, grammar, depth: int = 6):
    """Generate a random sentence of the grammar. Past `depth` we always pick
    the first alternative with no nonterminals in it, if there is one, so
    that the sentence stays finite.
    """
    sentence = []

    def expand(symbol, level):
        if symbol.is_terminal:
            sentence.append(symbol)
            return

        alternatives = grammar.alternatives(symbol)
        if level >= depth:
            flat = [p for _, p in alternatives if all(s.is_terminal for s in p.rhs)]
            production = flat[0] if flat else alternatives[0][1]
        else:
            production = choose([p for _, p in alternatives])

        for s in production.rhs:
            expand(s, level + 1)

    expand(grammar.start_symbol, 0)
    return sentence


@settings(max_examples=50)
@given(data())
def test_matches_reproduce_input(d):
    notation = bnf.load(EXAMPLES / "arith.g")
    grammar = notation.grammar.freeze()
    parser = Parser(generate_table(grammar))

    tokens = random_sentence(lambda choices: d.draw(sampled_from(choices)), grammar)
    steps = list(parser.steps(tokens))

    assert steps[-1] == Accept()
    assert [s.terminal for s in steps if isinstance(s, Match)] == tokens
    assert [s.position for s in steps if isinstance(s, Match)] == list(range(len(tokens)))
    for step in steps:
        if isinstance(step, Expand):
            assert grammar.get_rule(step.rule).lhs == step.nonterminal
