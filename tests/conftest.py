import types

import pytest

from cfgkit.grammar import Cfg


def build_canonical():
    """The grammar

        S -> A B C
        A -> ε | d
        B -> e
        C -> ε | f

    with the start rule S -> A B C. Symbols and rules are all exposed on the
    returned namespace so tests can refer to them by name.
    """
    cfg = Cfg()
    s = cfg.add_nonterminal()
    a = cfg.add_nonterminal()
    b = cfg.add_nonterminal()
    c = cfg.add_nonterminal()

    d = cfg.add_terminal()
    e = cfg.add_terminal()
    f = cfg.add_terminal()

    rs = cfg.add_rule(s, [a, b, c])
    ra1 = cfg.add_rule(a, [])
    ra2 = cfg.add_rule(a, [d])
    rb = cfg.add_rule(b, [e])
    rc1 = cfg.add_rule(c, [])
    rc2 = cfg.add_rule(c, [f])
    cfg.set_start(rs)

    return types.SimpleNamespace(
        cfg=cfg,
        S=s,
        A=a,
        B=b,
        C=c,
        d=d,
        e=e,
        f=f,
        rs=rs,
        ra1=ra1,
        ra2=ra2,
        rb=rb,
        rc1=rc1,
        rc2=rc2,
    )


@pytest.fixture
def canonical():
    return build_canonical()
