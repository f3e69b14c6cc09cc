"""Small typed programs shared by the tests"""

import sys
from pathlib import Path
sys.path.append(str(Path(__file__).parent.parent / 'src'))

from effinfer.domains import EffectSetDomain
from effinfer.infer import EffectContext
from effinfer.reporter import CollectingReporter
from effinfer.symbols import (
    ClassSymbol, ClassType, MethodSymbol, ParamSymbol, function_class,
)
from effinfer.trees import Apply, Ident, Literal, Select, Tree


class World:
    """Basic classes and a `Test` class holding the methods under test"""

    def __init__(self):
        self.unit = ClassSymbol("Unit")
        self.int = ClassSymbol("Int")
        self.string = ClassSymbol("String")
        self.function0 = function_class("Function0", 0)
        self.function1 = function_class("Function1", 1)
        self.test = ClassSymbol("Test")

        self.plus = self.int.method("+", ParamSymbol("that", param_type=ClassType(self.int)),
                                    result=ClassType(self.int))
        self.println = self.test.method("println", ParamSymbol("s", param_type=ClassType(self.string)),
                                        result=ClassType(self.unit))

    def tpe(self, cls: ClassSymbol) -> ClassType:
        return ClassType(cls)

    def method(self, name: str, *params: ParamSymbol, annotations=(), owner=None) -> MethodSymbol:
        owner = owner or self.test
        return owner.method(name, *params, annotations=annotations,
                            result=ClassType(self.unit))

    def param(self, name: str, cls: ClassSymbol = None, by_name: bool = False) -> ParamSymbol:
        cls = cls or self.unit
        return ParamSymbol(name, param_type=ClassType(cls), by_name=by_name)

    def domain(self, **kwargs) -> EffectSetDomain:
        """Effect set domain where `+` is pure and `println` does io"""
        defaults = {self.plus: (), self.println: ("io",)}
        defaults.update(kwargs.pop('defaults', {}))
        return EffectSetDomain(universe=("io", "state"), defaults=defaults, **kwargs)


def call(fun: MethodSymbol, *args: Tree, qual: Tree = None) -> Apply:
    ref = Select(qual, fun) if qual is not None else Ident(fun)
    return Apply(ref, list(args))


def lit(value=0) -> Literal:
    return Literal(value)


def make_context(expected=None, rel_env=(), error_info=None):
    reporter = CollectingReporter()
    return EffectContext(expected, tuple(rel_env), reporter, error_info), reporter
