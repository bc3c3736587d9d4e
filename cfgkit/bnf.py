"""A shorthand notation for writing small grammars as text.

Each line is one rule. The first character is the left-hand nonterminal and
the rest of the characters are the right-hand side. Uppercase letters are
nonterminals and every other character is a terminal. Whitespace is ignored,
so these two lines mean the same thing:

    S A B C
    SABC

A line with nothing but the left-hand side is an epsilon production, blank
lines are skipped, and the rule on the first line is the start rule. Here's
the grammar from the test suite:

    S A B C
    A
    A d
    B e
    C
    C f

Grammars are built entirely through the `Cfg` construction API; the only
extra thing we keep around is the character for each symbol, so that results
can be shown in the same notation.
"""

import dataclasses
import pathlib
import typing

from .grammar import (
    END_OF_INPUT,
    EPSILON,
    AnyCfg,
    Cfg,
    GrammarError,
    Production,
    Rule,
    Symbol,
)


@dataclasses.dataclass
class Notation:
    """A grammar loaded from the notation, plus the names of its symbols."""

    grammar: Cfg
    names: dict[Symbol, str]

    def terminals(self) -> dict[str, Symbol]:
        return {name: symbol for symbol, name in self.names.items() if symbol.is_terminal}

    def symbol(self, name: str) -> Symbol:
        """Look up a symbol by its character."""
        for symbol, n in self.names.items():
            if n == name:
                return symbol
        raise KeyError(name)

    def tokenize(self, text: str) -> list[Symbol]:
        """Turn a string into terminals, one per character, ignoring
        whitespace.
        """
        terminals = self.terminals()
        tokens = []
        for c in text:
            if c.isspace():
                continue
            symbol = terminals.get(c)
            if symbol is None:
                raise ValueError(f"'{c}' is not a terminal of this grammar")
            tokens.append(symbol)
        return tokens

    def format_symbol(self, symbol: Symbol) -> str:
        if symbol == EPSILON:
            return "ε"
        if symbol == END_OF_INPUT:
            return "$"
        return self.names.get(symbol, repr(symbol))

    def format_production(self, production: Production) -> str:
        lhs, rhs = production
        if len(rhs) == 0:
            return f"{self.format_symbol(lhs)} -> ε"
        return f"{self.format_symbol(lhs)} -> {' '.join(self.format_symbol(s) for s in rhs)}"

    def format_rule(self, grammar: AnyCfg, rule: Rule) -> str:
        production = grammar.get_rule(rule)
        if production is None:
            raise KeyError(rule)
        return self.format_production(production)

    def format_grammar(self, grammar: AnyCfg) -> str:
        """Render the grammar back into the notation, one rule per line, with
        the start rule first.
        """
        lines = []
        start = grammar.start
        order = [r for r, _ in grammar.rules()]
        if start is not None:
            order.remove(start)
            order.insert(0, start)

        for rule in order:
            production = grammar.get_rule(rule)
            assert production is not None
            lhs, rhs = production
            line = self.format_symbol(lhs)
            if rhs:
                line += " " + " ".join(self.format_symbol(s) for s in rhs)
            lines.append(line)
        return "\n".join(lines)

    def format_derivation(self, grammar: AnyCfg, derivation: typing.Iterable[Rule]) -> list[str]:
        return [self.format_rule(grammar, rule) for rule in derivation]


def from_str(text: str) -> Notation:
    """Build a grammar from the notation."""
    cfg = Cfg()
    nonterminals: dict[str, Symbol] = {}
    terminals: dict[str, Symbol] = {}
    names: dict[Symbol, str] = {}

    def nonterminal(c: str) -> Symbol:
        symbol = nonterminals.get(c)
        if symbol is None:
            symbol = cfg.add_nonterminal()
            nonterminals[c] = symbol
            names[symbol] = c
        return symbol

    def terminal(c: str) -> Symbol:
        symbol = terminals.get(c)
        if symbol is None:
            symbol = cfg.add_terminal()
            terminals[c] = symbol
            names[symbol] = c
        return symbol

    for line in text.splitlines():
        chars = [c for c in line if not c.isspace()]
        if len(chars) == 0:
            continue

        if not chars[0].isupper():
            raise GrammarError(f"The rule '{line.strip()}' must start with a nonterminal")

        lhs = nonterminal(chars[0])
        rhs = [nonterminal(c) if c.isupper() else terminal(c) for c in chars[1:]]
        rule = cfg.add_rule(lhs, rhs)
        if cfg.start is None:
            cfg.set_start(rule)

    return Notation(grammar=cfg, names=names)


def load(path: str | pathlib.Path) -> Notation:
    with open(path, "r", encoding="utf-8") as f:
        return from_str(f.read())
