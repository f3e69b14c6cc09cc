from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Optional, Union
import logging

from effinfer.domain import EffectDomain
from effinfer.errors import CompileError
from effinfer.infer import EffectContext
from effinfer.reporter import CollectingReporter, EffectReporter
from effinfer.symbols import Symbol
from effinfer.trees import DEFINITIONS, ClassDef, DefDef, ModuleDef, Tree, ValDef

logger = logging.getLogger(__name__)


@dataclass
class CheckOptions:
    """Options for effect checking"""
    error_info: Optional[str] = None  # note attached to every mismatch
    check_unannotated: bool = False  # check unannotated definitions against the domain default
    debug: bool = False


@dataclass
class CheckResult:
    symbol: Symbol
    effect: Any
    errors: List[CompileError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def configure_logging(level: int = logging.DEBUG) -> None:
    """Send effinfer log records to stderr"""
    root = logging.getLogger('effinfer')
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(name)s - %(levelname)s - %(message)s'))
        root.addHandler(handler)
    root.setLevel(level)


class EffectChecker:
    """Checks definitions against their declared effects.

    Each definition is analyzed with a fresh reporter: the expected effect is
    the declared one (when annotated) and the relative effect environment
    holds the definition's own relative effects.
    """

    def __init__(self, domain: EffectDomain, options: Optional[CheckOptions] = None):
        self.domain = domain
        self.options = options or CheckOptions()
        if self.options.debug:
            configure_logging()

    def context_for(self, sym: Symbol, reporter: EffectReporter) -> EffectContext:
        d = self.domain
        expected = None
        if d.has_effect_annotation(sym) or self.options.check_unannotated:
            expected = d.from_annotation(sym)
        return EffectContext(expected, tuple(d.relative_effects_of(sym)), reporter,
                             self.options.error_info)

    def check_body(self, sym: Symbol, stats: Iterable[Tree]) -> CheckResult:
        reporter = CollectingReporter()
        ctx = self.context_for(sym, reporter)
        effs = [self.domain.compute_effect(stat, ctx) for stat in stats]
        effect = self.domain.lattice.join_all(*effs)
        logger.debug(f"{sym!r}: {self.domain.lattice.show(effect)}, {len(reporter.errors)} error(s)")
        return CheckResult(sym, effect, reporter.errors)

    def check_method(self, tree: DefDef) -> CheckResult:
        body = [tree.body] if tree.body is not None else []
        return self.check_body(tree.symbol, body)

    def check_val(self, tree: ValDef) -> CheckResult:
        rhs = [tree.rhs] if tree.rhs is not None else []
        return self.check_body(tree.symbol, rhs)

    def check_template(self, tree: Union[ClassDef, ModuleDef]) -> List[CheckResult]:
        """Check the constructor statements of a class or module, then its members"""
        cls = tree.symbol if isinstance(tree, ClassDef) else tree.symbol.module_class
        results = []
        ctor = cls.primary_constructor if cls is not None else None
        if ctor is not None:
            stats = [t for t in tree.body if not isinstance(t, DEFINITIONS)]
            results.append(self.check_body(ctor, stats))
        for member in tree.body:
            results.extend(self.check_tree(member))
        return results

    def check_tree(self, tree: Tree) -> List[CheckResult]:
        """Check every definition in `tree`, including local ones"""
        if isinstance(tree, (ClassDef, ModuleDef)):
            return self.check_template(tree)
        if isinstance(tree, DefDef):
            results = [self.check_method(tree)]
            if tree.body is not None:
                for local in _definitions_in(tree.body):
                    results.extend(self.check_tree(local))
            return results
        if isinstance(tree, ValDef) and (tree.symbol.is_lazy or self.domain.has_effect_annotation(tree.symbol)):
            return [self.check_val(tree)]
        return [r for local in _definitions_in(tree) for r in self.check_tree(local)]

    def check_program(self, trees: Iterable[Tree]) -> List[CheckResult]:
        results = []
        for tree in trees:
            results.extend(self.check_tree(tree))
        errors = sum(len(r.errors) for r in results)
        logger.info(f"Checked {len(results)} definition(s), {errors} effect error(s)")
        return results


def _definitions_in(tree: Tree) -> Iterator[Tree]:
    """Outermost definitions strictly below `tree`"""
    for child in tree.children():
        if isinstance(child, (DefDef, ClassDef, ModuleDef)) or (
                isinstance(child, ValDef) and child.symbol.is_lazy):
            yield child
        else:
            yield from _definitions_in(child)
