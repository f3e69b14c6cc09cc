from __future__ import annotations

from typing import FrozenSet, Iterable, Mapping, Optional

from effinfer.annotations import EffectSpec
from effinfer.domain import EffectDomain
from effinfer.errors import annotation_error
from effinfer.lattice import EffectLattice
from effinfer.symbols import Symbol

EffectSet = FrozenSet[str]


class EffectSetLattice(EffectLattice[EffectSet]):
    """Subsets of a fixed universe of effect names, ordered by inclusion"""

    def __init__(self, universe: Iterable[str]):
        self.universe: EffectSet = frozenset(universe)

    @property
    def bottom(self) -> EffectSet:
        return frozenset()

    @property
    def top(self) -> EffectSet:
        return self.universe

    def join(self, a: EffectSet, b: EffectSet) -> EffectSet:
        return a | b

    def lte(self, a: EffectSet, b: EffectSet) -> bool:
        return a <= b

    def show(self, e: EffectSet) -> str:
        if not e:
            return "pure"
        return " | ".join(sorted(e))


class EffectSetDomain(EffectDomain):
    """Effects as sets of names such as `io` or `state`.

    `effect(pure)` is the empty set and `effect(any)` the whole universe.
    `defaults` gives built-in effects of primitive operations, which take
    precedence over their annotations.
    """

    def __init__(self, universe: Iterable[str] = ("io", "state"),
                 defaults: Optional[Mapping[Symbol, Iterable[str]]] = None):
        super().__init__()
        self._lattice = EffectSetLattice(universe)
        self.defaults = {sym: self.effect(*names) for sym, names in (defaults or {}).items()}

    @property
    def lattice(self) -> EffectSetLattice:
        return self._lattice

    def effect(self, *names: str) -> EffectSet:
        unknown = [n for n in names if n not in self._lattice.universe]
        if unknown:
            raise ValueError(f"Unknown effects {unknown}; known: {sorted(self._lattice.universe)}")
        return frozenset(names)

    def read_effect(self, spec: EffectSpec, sym: Symbol) -> EffectSet:
        res: set[str] = set()
        for name in spec.names:
            if name == "pure":
                continue
            if name == "any":
                res |= self._lattice.universe
            elif name in self._lattice.universe:
                res.add(name)
            else:
                raise annotation_error(f"Unknown effect '{name}'",
                                       f"effect({' | '.join(spec.names)})", sym)
        return frozenset(res)

    def default_invocation_effect(self, fun: Symbol) -> Optional[EffectSet]:
        return self.defaults.get(fun)
