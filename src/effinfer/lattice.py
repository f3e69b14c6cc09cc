from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

Effect = TypeVar("Effect")


class EffectLattice(ABC, Generic[Effect]):
    """Join-semilattice of effects with a least and a greatest element.

    Effects are opaque to the inference engine, which only builds them
    through these operations.
    """

    @property
    @abstractmethod
    def bottom(self) -> Effect:
        ...

    @property
    @abstractmethod
    def top(self) -> Effect:
        ...

    @abstractmethod
    def join(self, a: Effect, b: Effect) -> Effect:
        ...

    @abstractmethod
    def lte(self, a: Effect, b: Effect) -> bool:
        ...

    def join_all(self, *effects: Effect) -> Effect:
        res = self.bottom
        for e in effects:
            res = self.join(res, e)
        return res

    def show(self, e: Effect) -> str:
        """Text used for an effect in diagnostics"""
        return str(e)
