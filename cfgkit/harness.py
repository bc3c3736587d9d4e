"""A command-line harness for poking at grammars.

Load a grammar written in the shorthand notation (see `cfgkit.bnf`), build
its LL(1) table, and parse some strings with it:

    python -m cfgkit.harness examples/arith.g "i+i*i" --sets --table

Each input is parsed on its own; the derivation is printed one rule per line.
"""

import argparse
import logging
import sys

from . import analysis, bnf, ll1, runtime
from .grammar import GrammarError, Nonterminal


def _format_set(notation: bnf.Notation, symbols) -> str:
    return "{" + ", ".join(notation.format_symbol(s) for s in sorted(symbols)) + "}"


def print_sets(notation: bnf.Notation, grammar, out):
    nullable = analysis.compute_nullability(grammar)
    firsts = analysis.first_of_nonterminals(grammar)
    follows = analysis.compute_follow(grammar)

    print("nonterminal  nullable  FIRST / FOLLOW", file=out)
    for index, (first, follow) in enumerate(zip(firsts, follows)):
        symbol = Nonterminal(index)
        print(
            "{name: <12} {nullable: <9} {first} / {follow}".format(
                name=notation.format_symbol(symbol),
                nullable="yes" if symbol in nullable else "no",
                first=_format_set(notation, first),
                follow=_format_set(notation, follow),
            ),
            file=out,
        )


def main(args: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build and run LL(1) parsers for small grammars")
    parser.add_argument("grammar", help="Path to a grammar written in the shorthand notation")
    parser.add_argument("inputs", nargs="*", help="Strings to parse, one character per token")
    parser.add_argument(
        "--sets",
        action="store_true",
        help="Print the nullable, FIRST and FOLLOW sets of every nonterminal",
    )
    parser.add_argument(
        "--table",
        action="store_true",
        help="Print the LL(1) parse table",
    )
    parser.add_argument(
        "--log",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (DEBUG traces every parser step)",
    )
    parsed = parser.parse_args(args)

    logging.basicConfig(level=getattr(logging, parsed.log))

    try:
        notation = bnf.load(parsed.grammar)
        grammar = notation.grammar.freeze()
        if parsed.sets:
            print_sets(notation, grammar, sys.stdout)
        table = ll1.generate_table(grammar)
    except GrammarError as e:
        print(f"{parsed.grammar}: {e}", file=sys.stderr)
        return 1
    except ll1.LL1ConflictError as e:
        for conflict in e.conflicts:
            print(
                "conflict at [{nt}, {t}]: {existing} / {rule}".format(
                    nt=notation.format_symbol(conflict.nonterminal),
                    t=notation.format_symbol(conflict.terminal),
                    existing=notation.format_rule(grammar, conflict.existing),
                    rule=notation.format_rule(grammar, conflict.rule),
                ),
                file=sys.stderr,
            )
        return 1

    if parsed.table:
        print(table.format(notation.format_symbol))

    status = 0
    p = runtime.Parser(table)
    for text in parsed.inputs:
        print(f"{text}:")
        try:
            derivation = p.parse(notation.tokenize(text))
        except runtime.UnexpectedToken as e:
            print(
                "  expected {expected} at {position}, found {found}".format(
                    expected=notation.format_symbol(e.expected),
                    position=e.position,
                    found=notation.format_symbol(e.found),
                ),
                file=sys.stderr,
            )
            status = 1
            continue
        except runtime.NoApplicableRule as e:
            print(
                "  no rule for {nt} at {position} starts with {found}".format(
                    nt=notation.format_symbol(e.nonterminal),
                    position=e.position,
                    found=notation.format_symbol(e.found),
                ),
                file=sys.stderr,
            )
            status = 1
            continue
        except ValueError as e:
            print(f"  {e}", file=sys.stderr)
            status = 1
            continue

        for line in notation.format_derivation(grammar, derivation):
            print(f"  {line}")

    return status


if __name__ == "__main__":
    sys.exit(main())
