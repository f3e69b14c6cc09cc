"""Effect inference and checking for typed trees.

Submodules:
- errors: diagnostics with source locations
- symbols: symbols, class types and member resolution
- trees: typed tree nodes
- lattice: effect lattice interface
- relative: relative effects and their matching
- annotations: parser for effect(...) and rel(...) annotations
- reporter: mismatch error sinks
- infer: effect inference (dispatch, invocations, latent effects)
- domain: base class for effect domains
- domains: reference domains (effect sets, exceptions)
- checker: checks definitions against their declared effects
"""

from effinfer.checker import CheckOptions, CheckResult, EffectChecker
from effinfer.domain import EffectAnnotation, EffectDomain
from effinfer.errors import CompileError, SourceLocation
from effinfer.infer import EffectContext, Infer
from effinfer.lattice import EffectLattice
from effinfer.relative import ParamLoc, RelEffect, ThisLoc
from effinfer.reporter import CollectingReporter, EffectReporter

__all__ = [
    "CheckOptions",
    "CheckResult",
    "EffectChecker",
    "EffectAnnotation",
    "EffectDomain",
    "CompileError",
    "SourceLocation",
    "EffectContext",
    "Infer",
    "EffectLattice",
    "ParamLoc",
    "RelEffect",
    "ThisLoc",
    "CollectingReporter",
    "EffectReporter",
]
