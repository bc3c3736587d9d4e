"""A small toolkit for context-free grammars and LL(1) parsing.

Build a grammar with `Cfg`, freeze it, and turn it into a predictive parse
table with `generate_table`. Then feed tokens to a `Parser` to get back the
rules of a leftmost derivation:

    cfg = Cfg()
    s = cfg.add_nonterminal()
    a = cfg.add_terminal()
    cfg.set_start(cfg.add_rule(s, [a, s]))
    cfg.add_rule(s, [])

    table = generate_table(cfg.freeze())
    Parser(table).parse([a, a])  # [Rule(0), Rule(0), Rule(1)]

The `bnf` module has a one-character-per-symbol shorthand that is handy for
writing small grammars, and `harness` is a command line tool built on it.
"""

from .analysis import compute_follow, compute_nullability, first_of, first_of_nonterminals
from .grammar import (
    END_OF_INPUT,
    EPSILON,
    Cfg,
    FrozenCfg,
    GrammarError,
    Nonterminal,
    Production,
    Rule,
    Symbol,
    SymbolKind,
    Terminal,
)
from .ll1 import Conflict, LL1ConflictError, Table, TableBuilder, generate_table
from .runtime import (
    Accept,
    Expand,
    Match,
    NoApplicableRule,
    ParseError,
    Parser,
    UnexpectedToken,
)
