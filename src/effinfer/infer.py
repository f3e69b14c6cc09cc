from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Tuple
import logging

from effinfer.lattice import EffectLattice
from effinfer.relative import Loc, ParamLoc, RelEffect, ThisLoc
from effinfer.reporter import EffectReporter
from effinfer.symbols import MethodSymbol, ParamSymbol, Symbol, Type, resolve_member
from effinfer.trees import (
    DEFINITIONS, Apply, Ident, Select, This, Tree, TypeApply, ValDef, applied,
)

logger = logging.getLogger(__name__)

Effect = Any
ArgInfo = Tuple[Optional[Type], Optional[Loc]]


@dataclass(frozen=True)
class EffectContext:
    """The context passed through effect inference.

    expected:   if set, an error is reported when an inferred effect does not
                conform to it.
    rel_env:    relative effects active while inferring, i.e. the relative
                effects of the enclosing definition.
    reporter:   receives mismatch errors.
    error_info: optional text attached to every mismatch error.
    """
    expected: Optional[Effect]
    rel_env: Tuple[RelEffect, ...]
    reporter: EffectReporter
    error_info: Optional[str] = None


class Infer(ABC):
    """Effect inference over typed trees.

    Mixed into an effect domain, which supplies the lattice, annotation
    reading and relative-effect matching used here.
    """

    lattice: EffectLattice

    @abstractmethod
    def default_invocation_effect(self, fun: Symbol) -> Optional[Effect]:
        """Built-in effect of invoking `fun`, or None to use its annotations"""

    @abstractmethod
    def from_annotation(self, fun: Symbol) -> Effect:
        """Concrete effect declared on `fun`"""

    @abstractmethod
    def relative_effects_of(self, fun: Symbol) -> list[RelEffect]:
        """Relative effects declared on `fun`"""

    @abstractmethod
    def lte_rel_one(self, r: RelEffect, env: Iterable[RelEffect]) -> bool:
        ...

    @abstractmethod
    def lte_rel(self, rs: Iterable[RelEffect], env: Iterable[RelEffect]) -> bool:
        ...

    def check_conform(self, found: Effect, tree: Tree, ctx: EffectContext) -> Effect:
        """Check that `found` conforms to the expected effect in `ctx`.

        Returns `found` if no error is issued, `bottom` otherwise so that one
        error does not cause further mismatches in enclosing trees.
        """
        expected = ctx.expected
        if expected is not None and not self.lattice.lte(found, expected):
            ctx.reporter.error(self.lattice.show(expected), self.lattice.show(found),
                               tree, ctx.error_info)
            return self.lattice.bottom
        return found

    def compute_effect(self, tree: Tree, ctx: EffectContext) -> Effect:
        """Effect of `tree`, checked against `ctx.expected`.

        Domains override `compute_effect_impl`, not this method.
        """
        return self.check_conform(self.compute_effect_impl(tree, ctx), tree, ctx)

    def compute_effect_impl(self, tree: Tree, ctx: EffectContext) -> Effect:
        lat = self.lattice
        sym = getattr(tree, 'symbol', None)
        is_ref = isinstance(tree, (Select, Ident))

        # Method invocations
        if isinstance(tree, (Apply, TypeApply)):
            return self.compute_apply_effect(tree, ctx)
        if is_ref and sym is not None and sym.is_method:
            # parameterless methods are invoked by a bare reference
            return self.compute_apply_effect(tree, ctx)

        # Modules, lazy vals and by-name parameters
        if is_ref and sym is not None and sym.is_module:
            cls = sym.module_class
            constr = cls.primary_constructor if cls is not None else None
            if constr is None:
                return lat.bottom
            return self.latent(constr, {}, {}, ctx)
        if is_ref and sym is not None and sym.is_lazy:
            return self.latent(sym, {}, {}, ctx)
        if isinstance(tree, ValDef) and sym.is_lazy:
            # initialization is charged on first access
            return lat.bottom
        if is_ref and sym is not None and self._is_by_name(sym):
            if self._has_by_name_rel(sym, ctx):
                return lat.bottom
            return lat.top

        # Definitions
        if isinstance(tree, DEFINITIONS):
            return lat.bottom

        return lat.join_all(*self.compute_child_effects(tree, ctx))

    def compute_child_effects(self, tree: Tree, ctx: EffectContext) -> list[Effect]:
        # one level only: each child re-enters compute_effect
        return [self.compute_effect(child, ctx) for child in tree.children()]

    @staticmethod
    def _is_by_name(sym: Symbol) -> bool:
        tpe = sym.tpe
        return sym.is_by_name_param or (tpe is not None and tpe.is_by_name)

    @staticmethod
    def _has_by_name_rel(sym: Symbol, ctx: EffectContext) -> bool:
        """True if the enclosing definition is annotated `rel(x)` for by-name `x`.

        In constructor statements a by-name parameter is read through the field
        of the same name, so the field is matched against the constructor
        parameter as well.
        """
        is_field = sym.is_param_accessor
        for r in ctx.rel_env:
            if not isinstance(r.loc, ParamLoc) or r.fun is not None:
                continue
            rel_sym = r.loc.param
            if rel_sym is sym:
                return True
            if (is_field and rel_sym.name == sym.name and rel_sym.owner is not None
                    and rel_sym.owner.owner is sym.owner):
                return True
        return False

    def compute_apply_effect(self, tree: Tree, ctx: EffectContext) -> Effect:
        """Effect of a method invocation: the effect of the method selection,
        of the argument expressions, and the latent effect of the method.

        If the invocation is covered by the relative effects in `ctx`, the
        latent effect is `bottom`. Otherwise the relative effects of the method
        are expanded using the actual argument types.
        """
        lat = self.lattice
        app = applied(tree)
        fun = app.core
        args = app.args
        fun_sym = getattr(fun, 'symbol', None)
        params = fun_sym.params if isinstance(fun_sym, MethodSymbol) else []

        # computing the effect of `fun` itself would loop back here
        if isinstance(fun, Select):
            fun_eff = self.compute_effect(fun.qualifier, ctx)
        elif isinstance(fun, Ident):
            fun_eff = lat.bottom
        else:
            fun_eff = self.compute_effect(fun, ctx)

        pairs = list(zip(params, args))
        by_name_args = [(p, a) for p, a in pairs if p.is_by_name_param]
        by_val_args = [a for p, a in pairs if not p.is_by_name_param]
        by_val_args.extend(args[len(pairs):])

        # by-name argument effects count only through a `rel(x)` of the callee;
        # no expected effect here, the effect may be charged elsewhere
        no_expected = replace(ctx, expected=None)
        by_name_effs = {p: self.compute_effect(a, no_expected) for p, a in by_name_args}
        by_val_effs = [self.compute_effect(a, ctx) for a in by_val_args]

        if self._has_relative_effect(fun, ctx):
            lat_eff = lat.bottom
        elif fun_sym is None:
            logger.debug(f"Invocation without a resolved callee: {type(fun).__name__}")
            lat_eff = lat.top
        else:
            argtps = {ParamLoc(p): self._arg_tpe_and_loc(a) for p, a in pairs}
            lat_eff = self.latent(fun_sym, argtps, by_name_effs, ctx)

        return lat.join(lat.join(fun_eff, lat.join_all(*by_val_effs)), lat_eff)

    @staticmethod
    def _arg_tpe_and_loc(arg: Tree) -> ArgInfo:
        """Static type of an argument, and its location if it is a plain
        reference to a parameter or to `this`"""
        if (isinstance(arg, Ident) and isinstance(arg.symbol, ParamSymbol)
                and isinstance(arg.symbol.owner, MethodSymbol)):
            return arg.tpe, ParamLoc(arg.symbol)
        if isinstance(arg, This):
            return arg.tpe, ThisLoc(arg.symbol)
        return arg.tpe, None

    def _has_relative_effect(self, fun: Tree, ctx: EffectContext) -> bool:
        """True if `fun` is a method called on a parameter (or `this`) of the
        enclosing definition, which is polymorphic in that call"""
        if not isinstance(fun, Select):
            return False
        qual = fun.qualifier
        if isinstance(qual, Ident) and isinstance(qual.symbol, ParamSymbol):
            r = RelEffect(ParamLoc(qual.symbol), fun.symbol)
        elif isinstance(qual, This):
            r = RelEffect(ThisLoc(qual.symbol), fun.symbol)
        else:
            return False
        return self.lte_rel([r], ctx.rel_env)

    def latent(self, fun: Symbol, argtps: Mapping[Loc, ArgInfo],
               by_name_effs: Mapping[Symbol, Effect], ctx: EffectContext) -> Effect:
        """The maximal effect of invoking `fun` at this call site.

        argtps maps the parameters of `fun` to the static types of the actual
        arguments (and their locations). These may be more specific than the
        parameter types, which is what makes relative effects polymorphic.
        Relative effects already in `ctx.rel_env` are discharged.
        """
        default = self.default_invocation_effect(fun)
        if default is not None:
            return default

        lat = self.lattice
        concrete = self.from_annotation(fun)
        expanded = [self._expand_rel_effect(r, argtps, by_name_effs, ctx)
                    for r in self.relative_effects_of(fun)]
        return lat.join(concrete, lat.join_all(*expanded))

    def _expand_rel_effect(self, r: RelEffect, argtps: Mapping[Loc, ArgInfo],
                           by_name_effs: Mapping[Symbol, Effect], ctx: EffectContext) -> Effect:
        lat = self.lattice
        if self.lte_rel_one(r, ctx.rel_env):
            logger.debug(f"Discharged {r}")
            return lat.bottom

        loc = r.loc
        if isinstance(loc, ParamLoc) and r.fun is None and loc.param.is_by_name_param:
            return by_name_effs.get(loc.param, lat.top)

        target = r.fun if r.fun is not None else self._implicit_target(loc)
        if target is None:
            # TODO: join of the effects of all members of the location's type
            return lat.top

        # r stays assumed while its target is expanded, so cycles end
        inner = replace(ctx, rel_env=ctx.rel_env + (r,))
        if loc in argtps:
            tpe, arg_loc = argtps[loc]
            if arg_loc is not None and self.lte_rel_one(RelEffect(arg_loc, target), ctx.rel_env):
                # the argument is a parameter forwarded from the enclosing
                # definition, which already has this relative effect
                return lat.bottom
            resolved = resolve_member(tpe, target)
            fun = resolved.symbol if resolved is not None else target
            logger.debug(f"Expanding {r} to {fun!r} for argument type {tpe!r}")
            return self.latent(fun, {}, {}, inner)
        return self.latent(target, {}, {}, inner)

    @staticmethod
    def _implicit_target(loc: Loc) -> Optional[Symbol]:
        """`rel(f)` for a function-typed parameter `f` means `rel(f.apply)`"""
        if not isinstance(loc, ParamLoc):
            return None
        tpe = loc.param.param_type
        cls = tpe.class_symbol if tpe is not None else None
        if cls is None or not cls.is_function:
            return None
        return cls.member('apply')
