"""Checked exceptions as effects.

An effect is a set of exception classes that may be thrown; a set is below
another when each of its classes is a subclass of one in the other.
"""

from __future__ import annotations

from dataclasses import replace
from typing import FrozenSet, Iterable

from effinfer.annotations import EffectSpec
from effinfer.domain import EffectDomain
from effinfer.errors import annotation_error
from effinfer.infer import EffectContext
from effinfer.lattice import EffectLattice
from effinfer.symbols import ClassSymbol, Symbol
from effinfer.trees import Throw, Tree, Try

Exceptions = FrozenSet[ClassSymbol]


class ExceptionLattice(EffectLattice[Exceptions]):

    def __init__(self, throwable: ClassSymbol):
        self.throwable = throwable

    @property
    def bottom(self) -> Exceptions:
        return frozenset()

    @property
    def top(self) -> Exceptions:
        return frozenset([self.throwable])

    def join(self, a: Exceptions, b: Exceptions) -> Exceptions:
        both = a | b
        # keep only the most general classes
        return frozenset(x for x in both
                         if not any(y is not x and x.is_subclass(y) for y in both))

    def lte(self, a: Exceptions, b: Exceptions) -> bool:
        return all(any(x.is_subclass(y) for y in b) for x in a)

    def show(self, e: Exceptions) -> str:
        if not e:
            return "nothrow"
        return " | ".join(sorted(c.name for c in e))


class ExceptionsDomain(EffectDomain):

    def __init__(self, throwable: ClassSymbol, exception_classes: Iterable[ClassSymbol] = ()):
        super().__init__()
        self._lattice = ExceptionLattice(throwable)
        self.classes = {c.name: c for c in [throwable, *exception_classes]}

    @property
    def lattice(self) -> ExceptionLattice:
        return self._lattice

    def read_effect(self, spec: EffectSpec, sym: Symbol) -> Exceptions:
        res = self._lattice.bottom
        for name in spec.names:
            if name in ("pure", "nothrow"):
                continue
            if name == "any":
                cls = self._lattice.throwable
            elif name in self.classes:
                cls = self.classes[name]
            else:
                raise annotation_error(f"Unknown exception class '{name}'",
                                       f"effect({' | '.join(spec.names)})", sym)
            res = self._lattice.join(res, frozenset([cls]))
        return res

    def compute_effect_impl(self, tree: Tree, ctx: EffectContext) -> Exceptions:
        lat = self._lattice
        if isinstance(tree, Throw):
            tpe = tree.expr.tpe
            cls = tpe.class_symbol if tpe is not None else None
            thrown = frozenset([cls if cls is not None else lat.throwable])
            return lat.join(self.compute_effect(tree.expr, ctx), thrown)

        if isinstance(tree, Try):
            caught = frozenset(c.cls for c in tree.catches)
            # the block may throw what the handlers catch
            expected = ctx.expected
            block_ctx = ctx if expected is None else replace(ctx, expected=lat.join(expected, caught))
            block_eff = self.compute_effect(tree.block, block_ctx)
            escaping = frozenset(x for x in block_eff
                                 if not any(x.is_subclass(c) for c in caught))
            rest = [self.compute_effect(c, ctx) for c in tree.catches]
            if tree.finalizer is not None:
                rest.append(self.compute_effect(tree.finalizer, ctx))
            return lat.join_all(escaping, *rest)

        return super().compute_effect_impl(tree, ctx)
