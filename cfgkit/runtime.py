"""The table-driven LL(1) parser.

This is a pushdown automaton. The stack starts out as [END_OF_INPUT, start],
and on each step we look at the top of the stack and the next token:

- END_OF_INPUT on both: we're done, accept.
- a terminal that matches the token: pop it and consume the token.
- a terminal that doesn't match: that's an error.
- a nonterminal: look up the rule in the table (or fail if there isn't one),
  replace the nonterminal with the rule's right-hand side, and record the
  rule in the derivation.

There is never more than one rule in a table cell, so there is never a choice
to make and never any backtracking. The rules come out in the order of a
leftmost derivation.
"""

import dataclasses
import logging
import typing

from .grammar import END_OF_INPUT, EPSILON, Rule, Symbol
from .ll1 import Table

action_log = logging.getLogger("cfgkit.action")


class ParseError(Exception):
    """The input is not in the language of the grammar."""

    found: Symbol
    position: int

    def __init__(self, message: str, found: Symbol, position: int):
        super().__init__(message)
        self.found = found
        self.position = position


class UnexpectedToken(ParseError):
    """The parser expected one terminal and got another."""

    expected: Symbol

    def __init__(self, expected: Symbol, found: Symbol, position: int):
        super().__init__(
            f"Syntax Error: Expected {expected!r} at position {position}, found {found!r}",
            found,
            position,
        )
        self.expected = expected


class NoApplicableRule(ParseError):
    """There is no rule for this nonterminal that can start with this token."""

    nonterminal: Symbol

    def __init__(self, nonterminal: Symbol, found: Symbol, position: int):
        super().__init__(
            f"Syntax Error: No rule for {nonterminal!r} starts with {found!r} at position {position}",
            found,
            position,
        )
        self.nonterminal = nonterminal


@dataclasses.dataclass(frozen=True)
class Expand:
    """We replaced `nonterminal` on the stack with the right side of `rule`."""

    nonterminal: Symbol
    rule: Rule


@dataclasses.dataclass(frozen=True)
class Match:
    """We matched the input token at `position` against `terminal`."""

    terminal: Symbol
    position: int


@dataclasses.dataclass(frozen=True)
class Accept:
    pass


Step = Expand | Match | Accept


def prepare_tokens(tokens: typing.Iterable[Symbol]) -> list[Symbol]:
    """Check the incoming tokens and stick an END_OF_INPUT on the end, to make
    *sure* the input is terminated.
    """
    input: list[Symbol] = []
    for token in tokens:
        if not token.is_terminal or token.is_sentinel:
            raise ValueError(f"Input tokens must be ordinary terminals, not {token!r}")
        input.append(token)

    input.append(END_OF_INPUT)
    return input


class Parser:
    table: Table

    def __init__(self, table: Table):
        self.table = table

    def steps(self, tokens: typing.Iterable[Symbol]) -> typing.Iterator[Step]:
        """Run the automaton over the tokens, yielding every step it takes.

        The last step of a successful parse is `Accept()`. On bad input this
        raises a ParseError at the first point where things go wrong; there is
        no error recovery.
        """
        input = prepare_tokens(tokens)
        input_index = 0

        stack: list[Symbol] = [END_OF_INPUT, self.table.start]

        al = action_log
        while True:
            top = stack[-1]
            current_token = input[input_index]
            if al.isEnabledFor(logging.DEBUG):
                al.debug(
                    "{stack: <40} {input: <20}".format(
                        stack=repr(stack[-4:]),
                        input=repr(current_token),
                    )
                )

            if top == END_OF_INPUT:
                if current_token == END_OF_INPUT:
                    yield Accept()
                    return

                # Everything was parsed but there is still input left.
                raise UnexpectedToken(END_OF_INPUT, current_token, input_index)

            if top.is_terminal:
                if top != current_token:
                    raise UnexpectedToken(top, current_token, input_index)

                stack.pop()
                yield Match(current_token, input_index)
                input_index += 1

            else:
                rule = self.table.get(top, current_token)
                if rule is None:
                    raise NoApplicableRule(top, current_token, input_index)

                _, rhs = self.table.production(rule)
                stack.pop()
                stack.extend(reversed(rhs))
                yield Expand(top, rule)

            # EPSILON is only ever a placeholder, it never matches anything.
            while stack[-1] == EPSILON:
                stack.pop()

    def parse(self, tokens: typing.Iterable[Symbol]) -> list[Rule]:
        """Parse the tokens, returning the rules of a leftmost derivation."""
        return [step.rule for step in self.steps(tokens) if isinstance(step, Expand)]


def parse(table: Table, tokens: typing.Iterable[Symbol]) -> list[Rule]:
    return Parser(table).parse(tokens)
