"""Static relations over a grammar: nullability, FIRST and FOLLOW.

These are the relations a predictive (LL) parser needs to pick a rule by
looking at a single token. Nullability feeds FIRST, and FIRST feeds FOLLOW;
the table builder in `ll1` needs both FIRST and FOLLOW.
"""

import collections
import logging
import typing

from .grammar import (
    END_OF_INPUT,
    EPSILON,
    AnyCfg,
    FrozenCfg,
    GrammarError,
    Nonterminal,
    Symbol,
)

analysis_log = logging.getLogger("cfgkit.analysis")


def update_changed(items: set[Symbol], other: typing.Iterable[Symbol]) -> bool:
    """Merge the `other` set into the `items` set, and return True if this
    changed the items set.
    """
    old_len = len(items)
    items.update(other)
    return old_len != len(items)


def compute_nullability(grammar: AnyCfg) -> frozenset[Symbol]:
    """Compute the set of nonterminals that can derive the empty string in one
    or more steps.

    This runs in time proportional to the size of the grammar. Every rule gets
    a counter of how many of its right-hand side symbols are known to be
    nullable so far. Whenever a nonterminal becomes nullable we bump the
    counter of every rule that mentions it (by the number of times it is
    mentioned), and once a counter reaches the length of its right-hand side
    the left-hand side becomes nullable too. A nonterminal only ever becomes
    nullable once, so it only goes through the queue once.

    EPSILON placeholders on a right-hand side don't count towards its length;
    a rule made only of EPSILONs is an epsilon production.

    On a frozen grammar the result is kept in `grammar.nullable`.
    """
    if isinstance(grammar, FrozenCfg) and grammar.nullable is not None:
        return grammar.nullable

    nullable: set[Symbol] = set()
    queue: collections.deque[Symbol] = collections.deque()

    # uses[B] is the list of (rule index, occurrences of B) for rules that
    # mention B on the right.
    uses: dict[Symbol, list[typing.Tuple[int, int]]] = collections.defaultdict(list)
    counts: list[int] = []
    lengths: list[int] = []
    lhs_of: list[Symbol] = []

    for rule, (lhs, rhs) in grammar.rules():
        symbols = [s for s in rhs if s != EPSILON]
        counts.append(0)
        lengths.append(len(symbols))
        lhs_of.append(lhs)

        if len(symbols) == 0:
            if lhs not in nullable:
                nullable.add(lhs)
                queue.append(lhs)
            continue

        occurrences = collections.Counter(s for s in symbols if s.is_nonterminal)
        for symbol, count in occurrences.items():
            uses[symbol].append((rule.index, count))

    while queue:
        symbol = queue.popleft()
        for index, count in uses.get(symbol, ()):
            counts[index] += count
            if counts[index] == lengths[index]:
                lhs = lhs_of[index]
                if lhs not in nullable:
                    nullable.add(lhs)
                    queue.append(lhs)

    result = frozenset(nullable)
    if isinstance(grammar, FrozenCfg):
        grammar.nullable = result
    return result


def first_of(
    grammar: AnyCfg,
    symbols: typing.Iterable[Symbol],
    nullable: frozenset[Symbol] | None = None,
) -> set[Symbol]:
    """Compute FIRST of a sequence of symbols.

    FIRST of a sequence is the set of terminals that can begin some
    derivation of it. We walk the sequence from the left, adding FIRST of each
    symbol, and stop at the first symbol that can't derive epsilon: nothing
    after that can ever come first. If we run off the end (every symbol can
    derive epsilon, including the case of an empty sequence), then EPSILON is
    in the result too.

    FIRST of a nonterminal is the union of FIRST over its alternatives. We
    expand nonterminals recursively, but keep track of the ones we've already
    expanded during this call. A nonterminal that shows up again (say, because
    it recurses into itself through a nullable prefix) has nothing new to
    contribute, so we don't go around again, and that is what keeps left
    recursion from looping forever.

    Whether a symbol can derive epsilon comes from the nullability relation,
    so EPSILON only shows up when the whole top-level sequence can vanish.
    """
    if nullable is None:
        nullable = compute_nullability(grammar)

    def derives_epsilon(symbol: Symbol) -> bool:
        if symbol.is_terminal:
            return symbol == EPSILON
        return symbol in nullable

    result: set[Symbol] = set()
    expanded: set[Symbol] = set()

    def add_sequence(sequence: typing.Iterable[Symbol]) -> bool:
        # Returns True if every symbol in the sequence can derive epsilon.
        for symbol in sequence:
            if symbol.is_terminal:
                if symbol != EPSILON:
                    result.add(symbol)
            else:
                expand(symbol)

            if not derives_epsilon(symbol):
                return False
        return True

    def expand(nonterminal: Symbol):
        # Iterative, so that deep grammars don't blow the Python stack.
        stack = [nonterminal]
        while stack:
            current = stack.pop()
            if current in expanded:
                continue
            expanded.add(current)

            for _, (_, rhs) in grammar.alternatives(current):
                for symbol in rhs:
                    if symbol.is_terminal:
                        if symbol != EPSILON:
                            result.add(symbol)
                    elif symbol not in expanded:
                        stack.append(symbol)

                    if not derives_epsilon(symbol):
                        break

    if add_sequence(symbols):
        result.add(EPSILON)
    return result


def first_of_nonterminals(grammar: AnyCfg) -> list[set[Symbol]]:
    """FIRST of every nonterminal, indexed by nonterminal index."""
    nullable = compute_nullability(grammar)
    return [
        first_of(grammar, [Nonterminal(index)], nullable)
        for index in range(grammar.nonterminal_count)
    ]


def compute_follow(grammar: FrozenCfg) -> list[frozenset[Symbol]]:
    """Compute FOLLOW for every nonterminal, indexed by nonterminal index.

    FOLLOW(A) is the set of terminals that can come right after A in some
    sentence derived from the start symbol. END_OF_INPUT counts as a
    terminal here, and the start symbol is always followed by it.

    This happens in two steps. First we walk every rule once. Whenever we
    find a nonterminal B on the right, whatever can start the rest of the rule
    (the tail) can follow B, so FIRST(tail) goes straight into FOLLOW(B). If
    the tail can vanish entirely, then anything that follows the rule's
    left-hand side can also follow B, which we can't know yet, so instead we
    record a propagation edge lhs -> B.

    Then we push sets along the edges until nothing changes. One pass is not
    enough when edges chain together (FOLLOW(A) into FOLLOW(B) into
    FOLLOW(C)...), so we keep doing full passes until a pass changes nothing.
    Every set only grows and can't be larger than the number of terminals
    plus one, so this terminates.

    This only works on a frozen grammar: if rules could show up halfway
    through, the edges we recorded would be incomplete. The result is kept
    in `grammar.follow`.
    """
    if not isinstance(grammar, FrozenCfg):
        raise GrammarError("FOLLOW can only be computed on a frozen grammar")
    if grammar.follow is not None:
        return grammar.follow

    start = grammar.start_symbol
    if start is None:
        raise GrammarError("The grammar has no start rule")

    nullable = compute_nullability(grammar)

    follows: list[set[Symbol]] = [set() for _ in range(grammar.nonterminal_count)]
    follows[start.index].add(END_OF_INPUT)

    edges: set[typing.Tuple[int, int]] = set()
    for _, (lhs, rhs) in grammar.rules():
        for position, symbol in enumerate(rhs):
            if not symbol.is_nonterminal:
                continue

            tail = rhs[position + 1 :]
            first = first_of(grammar, tail, nullable)
            follows[symbol.index].update(s for s in first if s != EPSILON)
            if EPSILON in first:
                edges.add((lhs.index, symbol.index))

    ordered_edges = sorted(edges)
    passes = 0
    changed = True
    while changed:
        changed = False
        passes += 1
        for source, target in ordered_edges:
            if source != target:
                changed = update_changed(follows[target], follows[source]) or changed

    analysis_log.debug("FOLLOW converged after %d passes over %d edges", passes, len(edges))

    result = [frozenset(f) for f in follows]
    grammar.follow = result
    return result
