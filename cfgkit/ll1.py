"""LL(1) predictive parse table generation.

The table has one row per nonterminal and one column per terminal, plus an
extra column for END_OF_INPUT. Each cell says which rule to use when that
nonterminal is on top of the parse stack and that terminal is the next token.

For each rule `A -> rhs`, the rule goes in `table[A][t]` for every terminal t
in FIRST(rhs). If rhs can vanish (EPSILON is in FIRST(rhs)) then it also goes
in `table[A][b]` for every b in FOLLOW(A), since in that case the next token is
whatever comes after A.

If two different rules ever want the same cell, the grammar isn't LL(1). We
never pick one of them: we gather up every conflict and then refuse to build
the table at all, since a parser built on a table like that would quietly
make the wrong choice on some inputs.
"""

import dataclasses
import logging
import typing

from .analysis import compute_follow, compute_nullability, first_of
from .grammar import (
    END_OF_INPUT,
    EPSILON,
    FrozenCfg,
    GrammarError,
    Nonterminal,
    PackedRule,
    Production,
    Rule,
    Symbol,
    Terminal,
    decode_rule,
)

table_log = logging.getLogger("cfgkit.table")


@dataclasses.dataclass(frozen=True)
class Conflict:
    """Two rules that both want the same cell of the table."""

    nonterminal: Symbol
    terminal: Symbol
    existing: Rule
    rule: Rule

    def __str__(self):
        return (
            f"When expanding {self.nonterminal!r} and seeing {self.terminal!r} we don't know"
            f" whether to use {self.existing!r} or {self.rule!r}"
        )


class LL1ConflictError(Exception):
    """The grammar is not LL(1)."""

    conflicts: list[Conflict]

    def __init__(self, conflicts: list[Conflict]):
        assert len(conflicts) > 0
        self.conflicts = conflicts

    @property
    def nonterminal(self) -> Symbol:
        return self.conflicts[0].nonterminal

    @property
    def terminal(self) -> Symbol:
        return self.conflicts[0].terminal

    @property
    def rules(self) -> typing.Tuple[Rule, Rule]:
        return (self.conflicts[0].existing, self.conflicts[0].rule)

    def __str__(self):
        return f"{len(self.conflicts)} LL(1) conflicts:\n\n" + "\n\n".join(
            str(conflict) for conflict in self.conflicts
        )


@dataclasses.dataclass
class Table:
    """A predictive parse table, along with a snapshot of the rules it was
    built from so that the parser doesn't need the grammar anymore.
    """

    start: Symbol
    start_rule: Rule
    rules: typing.Tuple[PackedRule, ...]
    terminal_count: int
    cells: list[list[Rule | None]]

    @property
    def nonterminal_count(self) -> int:
        return len(self.cells)

    def column(self, terminal: Symbol) -> int | None:
        """The column for a terminal, or None if it has no column."""
        if terminal == END_OF_INPUT:
            return self.terminal_count
        if terminal.is_terminal and 0 <= terminal.index < self.terminal_count:
            return terminal.index
        return None

    def get(self, nonterminal: Symbol, terminal: Symbol) -> Rule | None:
        """The rule to use for `nonterminal` when the next token is
        `terminal`, or None if that is an error.
        """
        if not nonterminal.is_nonterminal or not 0 <= nonterminal.index < len(self.cells):
            return None
        column = self.column(terminal)
        if column is None:
            return None
        return self.cells[nonterminal.index][column]

    def production(self, rule: Rule) -> Production:
        return decode_rule(self.rules[rule.index])

    def format(self, names: typing.Callable[[Symbol], str] | None = None) -> str:
        """Format the table so pretty."""
        if names is None:
            names = repr

        columns = [names(Terminal(i)) for i in range(self.terminal_count)]
        columns.append(names(END_OF_INPUT))
        rows = [names(Nonterminal(i)) for i in range(len(self.cells))]

        def format_cell(cell: Rule | None) -> str:
            return "" if cell is None else f"r{cell.index}"

        row_width = max([len(r) for r in rows] + [4])
        cell_width = max(
            [len(c) for c in columns]
            + [len(format_cell(c)) for row in self.cells for c in row]
            + [4]
        )

        header = "{blank: <{rw}} | {cols}".format(
            blank="",
            rw=row_width,
            cols=" ".join(f"{c: <{cell_width}}" for c in columns),
        )
        lines = [header, "-" * len(header)] + [
            "{name: <{rw}} | {cells}".format(
                name=name,
                rw=row_width,
                cells=" ".join(f"{format_cell(c): <{cell_width}}" for c in row),
            )
            for name, row in zip(rows, self.cells)
        ]
        return "\n".join(lines)


class TableBuilder:
    """A helper object to assemble rules into an LL(1) table.

    Call `set_table_rule` for every cell a rule claims, then `flush` to get
    the table. `flush` raises if any two rules fought over a cell.
    """

    errors: list[Conflict]
    cells: list[list[Rule | None]]

    def __init__(self, terminal_count: int, nonterminal_count: int):
        self.errors = []
        self.terminal_count = terminal_count
        self.cells = [[None] * (terminal_count + 1) for _ in range(nonterminal_count)]

    def _column(self, terminal: Symbol) -> int:
        if terminal == END_OF_INPUT:
            return self.terminal_count
        assert terminal.is_terminal and terminal != EPSILON
        assert terminal.index < self.terminal_count
        return terminal.index

    def set_table_rule(self, nonterminal: Symbol, terminal: Symbol, rule: Rule):
        """Put `rule` in the cell for (nonterminal, terminal).

        This records a conflict if some other rule is already in that cell.
        """
        row = self.cells[nonterminal.index]
        column = self._column(terminal)
        existing = row[column]
        if existing is not None and existing != rule:
            table_log.debug("conflict at [%r, %r]: %r vs %r", nonterminal, terminal, existing, rule)
            self.errors.append(Conflict(nonterminal, terminal, existing, rule))
            return

        row[column] = rule

    def flush(self, start_rule: Rule, rules: typing.Tuple[PackedRule, ...]) -> Table:
        """Finish building the table and return it.

        Raises LL1ConflictError if there were any conflicts during
        construction.
        """
        if self.errors:
            raise LL1ConflictError(self.errors)

        start = Symbol.unpack(rules[start_rule.index][0])
        return Table(
            start=start,
            start_rule=start_rule,
            rules=rules,
            terminal_count=self.terminal_count,
            cells=self.cells,
        )


def generate_table(grammar: FrozenCfg) -> Table:
    """Build the LL(1) table for a frozen grammar.

    A grammar is LL(1) exactly when this succeeds.
    """
    if not isinstance(grammar, FrozenCfg):
        raise GrammarError("Tables can only be built from a frozen grammar")

    follow = compute_follow(grammar)
    nullable = compute_nullability(grammar)
    start_rule = grammar.start
    assert start_rule is not None  # compute_follow checked this

    builder = TableBuilder(grammar.terminal_count, grammar.nonterminal_count)
    for rule, (lhs, rhs) in grammar.rules():
        first = first_of(grammar, rhs, nullable)
        for terminal in sorted(first):
            if terminal != EPSILON:
                builder.set_table_rule(lhs, terminal, rule)

        if EPSILON in first:
            for terminal in sorted(follow[lhs.index]):
                builder.set_table_rule(lhs, terminal, rule)

    table = builder.flush(start_rule, grammar.packed_rules)
    table_log.info(
        "built LL(1) table: %d nonterminals, %d terminals, %d rules",
        table.nonterminal_count,
        table.terminal_count,
        len(table.rules),
    )
    return table
