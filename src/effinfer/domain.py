from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple
import logging
import re

from effinfer.annotations import EffectSpec, RelSpec, RelSpecs, parse_annotation
from effinfer.errors import CompileError, annotation_error
from effinfer.infer import Infer
from effinfer.lattice import EffectLattice
from effinfer.relative import ParamLoc, RelEffect, ThisLoc, lte_rel, lte_rel_one
from effinfer.symbols import ClassSymbol, MethodSymbol, Symbol

logger = logging.getLogger(__name__)

Effect = Any

_EFFECT_ANNOTATION = re.compile(r'^\s*@?\s*(effect|rel)\s*\(')


@dataclass(frozen=True)
class EffectAnnotation:
    concrete: Effect
    relative: Tuple[RelEffect, ...] = ()


class EffectDomain(Infer):
    """An effect lattice together with the meaning of its annotations.

    Subclasses provide the lattice and `read_effect`; they may override
    `default_invocation_effect` for built-in operations and
    `compute_effect_impl` for domain-specific trees.
    """

    def __init__(self):
        self._annotations: dict[Tuple[Symbol, Tuple[str, ...]], EffectAnnotation] = {}

    @property
    @abstractmethod
    def lattice(self) -> EffectLattice:
        ...

    @abstractmethod
    def read_effect(self, spec: EffectSpec, sym: Symbol) -> Effect:
        """Interpret the names of an `effect(...)` annotation"""

    def default_invocation_effect(self, fun: Symbol) -> Optional[Effect]:
        """Built-in effect of `fun`, independent of its annotations"""
        return None

    def unannotated_effect(self, sym: Symbol) -> Effect:
        return self.lattice.top

    def has_effect_annotation(self, sym: Symbol) -> bool:
        return any(_EFFECT_ANNOTATION.match(text) for text in sym.annotations)

    def from_annotation(self, fun: Symbol) -> Effect:
        return self.effect_annotation(fun).concrete

    def relative_effects_of(self, fun: Symbol) -> list[RelEffect]:
        return list(self.effect_annotation(fun).relative)

    def lte_rel_one(self, r: RelEffect, env: Iterable[RelEffect]) -> bool:
        return lte_rel_one(r, env)

    def lte_rel(self, rs: Iterable[RelEffect], env: Iterable[RelEffect]) -> bool:
        return lte_rel(rs, env)

    def effect_annotation(self, sym: Symbol) -> EffectAnnotation:
        # annotations added after a read are picked up on the next one
        key = (sym, tuple(sym.annotations))
        if key not in self._annotations:
            try:
                ann = self._read_annotations(sym)
            except CompileError as e:
                logger.warning(f"Ignoring malformed effect annotation on '{sym.name}': {e}")
                ann = EffectAnnotation(self.lattice.top)
            self._annotations[key] = ann
        return self._annotations[key]

    def _read_annotations(self, sym: Symbol) -> EffectAnnotation:
        lat = self.lattice
        concrete = None
        rels: list[RelEffect] = []
        for text in sym.annotations:
            if not _EFFECT_ANNOTATION.match(text):
                continue
            ann = parse_annotation(text)
            if isinstance(ann, EffectSpec):
                eff = self.read_effect(ann, sym)
                concrete = eff if concrete is None else lat.join(concrete, eff)
            elif isinstance(ann, RelSpecs):
                rels.extend(self._resolve_rel(spec, sym, text) for spec in ann.specs)

        if concrete is None:
            # a definition with only relative effects is otherwise pure
            concrete = lat.bottom if rels else self.unannotated_effect(sym)
        return EffectAnnotation(concrete, tuple(rels))

    def _resolve_rel(self, spec: RelSpec, sym: Symbol, text: str) -> RelEffect:
        if spec.is_this:
            cls = _enclosing_class(sym)
            if cls is None:
                raise annotation_error("'this' outside of a class", text, sym)
            loc = ThisLoc(cls)
            tpe = cls.tpe
        else:
            param = sym.param(spec.target) if isinstance(sym, MethodSymbol) else None
            if param is None:
                raise annotation_error(f"Unknown parameter '{spec.target}'", text, sym)
            loc = ParamLoc(param)
            tpe = param.param_type

        if spec.member is None:
            return RelEffect(loc)
        fun = tpe.member(spec.member) if tpe is not None else None
        if fun is None:
            raise annotation_error(f"'{spec.target}' has no member '{spec.member}'", text, sym)
        return RelEffect(loc, fun)


def _enclosing_class(sym: Symbol) -> Optional[ClassSymbol]:
    owner = sym.owner
    while owner is not None and not isinstance(owner, ClassSymbol):
        owner = owner.owner
    return owner
