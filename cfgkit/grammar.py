"""Context-free grammar representation.

A context-free grammar is built out of two sorts of symbols: terminals, which
stand for literal input tokens, and nonterminals, which can be replaced by the
right-hand side of one of their rules. A rule is a nonterminal on the left and
a (possibly empty) sequence of symbols on the right. An empty right-hand side
is an epsilon production.

## Symbols

Terminals and nonterminals each get their own dense index space starting at
zero, so `Terminal(0)` and `Nonterminal(0)` are different symbols. In memory a
`Symbol` is a small frozen dataclass of (kind, index), which gives us hashing
and a total order by (kind, index), and only ever compares equal to another
Symbol. For compact storage inside rule lists
symbols are packed into a single word: bit 31 is set for nonterminals and the
low 31 bits hold the index.

Two terminals are reserved and never allocated: EPSILON, the empty string, and
END_OF_INPUT, the marker for the end of the token stream (and the bottom of the
parse stack).

## Freezing

Grammars have two phases. A `Cfg` is buildable: you can add symbols and rules,
but never remove them, and rule indices never change once assigned. Calling
`freeze()` consumes the `Cfg` and gives you a `FrozenCfg`, which can't be
changed at all. Things like FOLLOW depend on the rule set staying fixed for the
whole computation, so those analyses (and table construction) only accept a
frozen grammar, and that is also the only place they cache their results.
"""

import dataclasses
import enum
import typing


class GrammarError(ValueError):
    """Raised when a grammar is built or used incorrectly."""

    pass


class SymbolKind(enum.IntEnum):
    TERMINAL = 0
    NONTERMINAL = 1


NONTERMINAL_BIT = 1 << 31
INDEX_MASK = NONTERMINAL_BIT - 1


@dataclasses.dataclass(frozen=True, order=True)
class Symbol:
    """A grammar symbol: either a terminal or a nonterminal, plus an index in
    the dense index space for that kind.
    """

    kind: SymbolKind
    index: int

    @property
    def is_terminal(self) -> bool:
        return self.kind == SymbolKind.TERMINAL

    @property
    def is_nonterminal(self) -> bool:
        return self.kind == SymbolKind.NONTERMINAL

    @property
    def is_sentinel(self) -> bool:
        return self.is_terminal and self.index >= FIRST_RESERVED_INDEX

    def pack(self) -> int:
        """Encode this symbol into a single word."""
        if self.kind == SymbolKind.NONTERMINAL:
            return self.index | NONTERMINAL_BIT
        return self.index

    @classmethod
    def unpack(cls, word: int) -> "Symbol":
        """Decode a word produced by `pack`."""
        if word & NONTERMINAL_BIT:
            return cls(SymbolKind.NONTERMINAL, word & INDEX_MASK)
        return cls(SymbolKind.TERMINAL, word & INDEX_MASK)

    def __repr__(self) -> str:
        if self == EPSILON:
            return "EPSILON"
        if self == END_OF_INPUT:
            return "END_OF_INPUT"
        if self.kind == SymbolKind.NONTERMINAL:
            return f"Nonterminal({self.index})"
        return f"Terminal({self.index})"


def Terminal(index: int) -> Symbol:
    return Symbol(SymbolKind.TERMINAL, index)


def Nonterminal(index: int) -> Symbol:
    return Symbol(SymbolKind.NONTERMINAL, index)


# The top two terminal indices are reserved for the sentinels.
EPSILON = Terminal(INDEX_MASK)
END_OF_INPUT = Terminal(INDEX_MASK - 1)
FIRST_RESERVED_INDEX = INDEX_MASK - 1


class Rule(typing.NamedTuple):
    """A handle to a rule: its position in the grammar's rule list."""

    index: int

    def __repr__(self) -> str:
        return f"Rule({self.index})"


class Production(typing.NamedTuple):
    """The decoded form of a rule, `lhs -> rhs[0] rhs[1] ...`."""

    lhs: Symbol
    rhs: typing.Tuple[Symbol, ...]


PackedRule = typing.Tuple[int, typing.Tuple[int, ...]]


def decode_rule(packed: PackedRule) -> Production:
    lhs, rhs = packed
    return Production(Symbol.unpack(lhs), tuple(Symbol.unpack(s) for s in rhs))


class _CfgBase:
    """The read-only part of a grammar, shared by both phases."""

    _rules: typing.Sequence[PackedRule]
    _start: Rule | None
    _terminal_count: int
    _nonterminal_count: int

    @property
    def rule_count(self) -> int:
        return len(self._rules)

    @property
    def terminal_count(self) -> int:
        """Each index from 0 to this number (exclusive) is a valid terminal."""
        return self._terminal_count

    @property
    def nonterminal_count(self) -> int:
        """Each index from 0 to this number (exclusive) is a valid nonterminal."""
        return self._nonterminal_count

    @property
    def start(self) -> Rule | None:
        return self._start

    @property
    def start_symbol(self) -> Symbol | None:
        if self._start is None:
            return None
        return Symbol.unpack(self._rules[self._start.index][0])

    def get_rule(self, rule: Rule) -> Production | None:
        """Look up a rule, returning None if there is no such rule."""
        if 0 <= rule.index < len(self._rules):
            return decode_rule(self._rules[rule.index])
        return None

    def rules(self) -> typing.Iterator[typing.Tuple[Rule, Production]]:
        """Iterate over all the rules in insertion order."""
        for index, packed in enumerate(self._rules):
            yield Rule(index), decode_rule(packed)

    def alternatives(self, nonterminal: Symbol) -> list[typing.Tuple[Rule, Production]]:
        """All the rules with the given nonterminal on the left, in order."""
        if not nonterminal.is_nonterminal or not self.is_allocated(nonterminal):
            raise GrammarError(f"{nonterminal!r} is not a nonterminal of this grammar")
        return self._alternatives()[nonterminal.index]

    def _alternatives(self) -> list[list[typing.Tuple[Rule, Production]]]:
        result: list[list[typing.Tuple[Rule, Production]]] = [
            [] for _ in range(self._nonterminal_count)
        ]
        for rule, production in self.rules():
            result[production.lhs.index].append((rule, production))
        return result

    def is_allocated(self, symbol: Symbol) -> bool:
        if symbol.kind == SymbolKind.NONTERMINAL:
            return 0 <= symbol.index < self._nonterminal_count
        return 0 <= symbol.index < self._terminal_count


class Cfg(_CfgBase):
    """A context-free grammar that is still being built.

    Symbols are handed out by `add_terminal` and `add_nonterminal`, and rules
    refer to them. Once the grammar is complete, call `freeze()` to get the
    `FrozenCfg` that the analyses and table construction work on:

        cfg = Cfg()
        s = cfg.add_nonterminal()
        x = cfg.add_terminal()
        cfg.set_start(cfg.add_rule(s, [x]))
        frozen = cfg.freeze()
    """

    _rules: list[PackedRule]
    _consumed: bool
    _by_lhs: list[list[typing.Tuple[Rule, Production]]] | None

    def __init__(self):
        self._rules = []
        self._start = None
        self._terminal_count = 0
        self._nonterminal_count = 0
        self._consumed = False
        self._by_lhs = None

    def _check_buildable(self):
        if self._consumed:
            raise GrammarError("This grammar has been frozen and can no longer be changed")

    def add_terminal(self) -> Symbol:
        """Allocate a new terminal and return it."""
        self._check_buildable()
        if self._terminal_count >= FIRST_RESERVED_INDEX:
            raise GrammarError("Too many terminals")
        symbol = Terminal(self._terminal_count)
        self._terminal_count += 1
        return symbol

    def add_nonterminal(self) -> Symbol:
        """Allocate a new nonterminal and return it."""
        self._check_buildable()
        if self._nonterminal_count > INDEX_MASK:
            raise GrammarError("Too many nonterminals")
        symbol = Nonterminal(self._nonterminal_count)
        self._nonterminal_count += 1
        self._by_lhs = None
        return symbol

    def add_rule(self, lhs: Symbol, rhs: typing.Iterable[Symbol]) -> Rule:
        """Add the rule `lhs -> rhs[0] rhs[1] ...` and return its handle.

        The left-hand side has to be a nonterminal, and every symbol has to
        have been allocated from this grammar already. EPSILON is accepted on
        the right-hand side as an explicit placeholder for nothing.
        """
        self._check_buildable()
        rhs = tuple(rhs)
        if not lhs.is_nonterminal:
            raise GrammarError(f"The left-hand side of a rule must be a nonterminal, not {lhs!r}")
        if not self.is_allocated(lhs):
            raise GrammarError(f"{lhs!r} was not allocated by this grammar")
        for symbol in rhs:
            if symbol == EPSILON:
                continue
            if not self.is_allocated(symbol):
                raise GrammarError(f"{symbol!r} was not allocated by this grammar")

        self._rules.append((lhs.pack(), tuple(s.pack() for s in rhs)))
        self._by_lhs = None
        return Rule(len(self._rules) - 1)

    def _alternatives(self) -> list[list[typing.Tuple[Rule, Production]]]:
        # Rebuilt lazily after symbols or rules are added.
        if self._by_lhs is None:
            self._by_lhs = super()._alternatives()
        return self._by_lhs

    def set_start(self, rule: Rule):
        """Set the start rule. Its left-hand side is the start symbol."""
        self._check_buildable()
        if not 0 <= rule.index < len(self._rules):
            raise GrammarError(f"{rule!r} is not a rule of this grammar")
        self._start = rule

    def freeze(self) -> "FrozenCfg":
        """Freeze this grammar, preventing later mutations.

        This consumes the `Cfg`: after the call it refuses any further
        changes, and only the returned `FrozenCfg` should be used.
        """
        self._check_buildable()
        self._consumed = True
        return FrozenCfg(
            rules=tuple(self._rules),
            start=self._start,
            terminal_count=self._terminal_count,
            nonterminal_count=self._nonterminal_count,
        )


class FrozenCfg(_CfgBase):
    """A grammar that can no longer change.

    The analysis engine stores its results in `nullable` and `follow` the
    first time it runs against a frozen grammar, and reuses them after that.
    """

    _rules: typing.Tuple[PackedRule, ...]

    nullable: frozenset[Symbol] | None
    follow: list[frozenset[Symbol]] | None

    def __init__(
        self,
        rules: typing.Tuple[PackedRule, ...],
        start: Rule | None,
        terminal_count: int,
        nonterminal_count: int,
    ):
        self._rules = rules
        self._start = start
        self._terminal_count = terminal_count
        self._nonterminal_count = nonterminal_count
        self._by_lhs = super()._alternatives()

        self.nullable = None
        self.follow = None

    def _alternatives(self) -> list[list[typing.Tuple[Rule, Production]]]:
        return self._by_lhs

    @property
    def packed_rules(self) -> typing.Tuple[PackedRule, ...]:
        return self._rules


AnyCfg = Cfg | FrozenCfg
