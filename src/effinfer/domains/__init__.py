from effinfer.domains.effect_set import EffectSetDomain, EffectSetLattice
from effinfer.domains.exceptions import ExceptionLattice, ExceptionsDomain

__all__ = [
    "EffectSetDomain",
    "EffectSetLattice",
    "ExceptionLattice",
    "ExceptionsDomain",
]
