"""Relative (effect-polymorphic) effects.

A method annotated ``rel(f.apply)`` has, besides its concrete effect, the
effect of calling ``apply`` on whatever is passed as ``f``. Such clauses are
kept as ``RelEffect(ParamLoc(f), apply)``; the receiver is ``ThisLoc(cls)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from effinfer.symbols import ClassSymbol, MethodSymbol, ParamSymbol, Symbol


@dataclass(frozen=True, eq=False)
class ThisLoc:
    cls: ClassSymbol

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ThisLoc) and other.cls is self.cls

    def __hash__(self) -> int:
        return hash(("this", id(self.cls)))

    def __str__(self) -> str:
        return f"{self.cls.name}.this"


@dataclass(frozen=True, eq=False)
class ParamLoc:
    param: ParamSymbol

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ParamLoc) and other.param is self.param

    def __hash__(self) -> int:
        return hash(("param", id(self.param)))

    def __str__(self) -> str:
        return self.param.name


Loc = Union[ThisLoc, ParamLoc]


@dataclass(frozen=True, eq=False)
class RelEffect:
    loc: Loc
    fun: Optional[Symbol] = None

    def __eq__(self, other: object) -> bool:
        return (isinstance(other, RelEffect) and other.loc == self.loc
                and other.fun is self.fun)

    def __hash__(self) -> int:
        return hash((self.loc, id(self.fun)))

    def __str__(self) -> str:
        if self.fun is None:
            return f"rel({self.loc})"
        return f"rel({self.loc}.{self.fun.name})"


def lte_rel_one(r: RelEffect, env: Iterable[RelEffect]) -> bool:
    """True if `r` is implied by some clause of `env`.

    A clause without a target operation covers every operation at the same
    location; a clause on an operation also covers its overrides.
    """
    for e in env:
        if e.loc != r.loc:
            continue
        if e.fun is None or e.fun is r.fun:
            return True
        if isinstance(r.fun, MethodSymbol) and r.fun.overrides(e.fun):
            return True
    return False


def lte_rel(rs: Iterable[RelEffect], env: Iterable[RelEffect]) -> bool:
    env = list(env)
    return all(lte_rel_one(r, env) for r in rs)
