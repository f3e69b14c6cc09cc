from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from effinfer.errors import SourceLocation
from effinfer.symbols import (
    ClassSymbol, ClassType, MethodSymbol, ModuleSymbol, Symbol, Type,
)


@dataclass(eq=False)
class Tree:
    """Typed tree node. Nodes are compared by identity."""

    tpe: Optional[Type] = field(default=None, kw_only=True)
    location: Optional[SourceLocation] = field(default=None, kw_only=True)

    def children(self) -> list["Tree"]:
        """Immediate subtrees, in evaluation order"""
        return []

    def _default_tpe(self, sym: Optional[Symbol]) -> None:
        if self.tpe is None and sym is not None:
            self.tpe = sym.tpe


@dataclass(eq=False)
class Literal(Tree):
    value: Any = None


@dataclass(eq=False)
class Ident(Tree):
    symbol: Symbol

    def __post_init__(self) -> None:
        self._default_tpe(self.symbol)


@dataclass(eq=False)
class This(Tree):
    symbol: ClassSymbol

    def __post_init__(self) -> None:
        self._default_tpe(self.symbol)


@dataclass(eq=False)
class Select(Tree):
    qualifier: Tree
    symbol: Symbol

    def __post_init__(self) -> None:
        self._default_tpe(self.symbol)

    def children(self) -> list[Tree]:
        return [self.qualifier]


@dataclass(eq=False)
class Apply(Tree):
    fun: Tree
    args: list[Tree] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.tpe is None:
            sym = self.symbol
            if isinstance(sym, MethodSymbol):
                self.tpe = sym.result

    @property
    def symbol(self) -> Optional[Symbol]:
        return getattr(self.fun, 'symbol', None)

    def children(self) -> list[Tree]:
        return [self.fun, *self.args]


@dataclass(eq=False)
class TypeApply(Tree):
    fun: Tree
    targs: list[Type] = field(default_factory=list)

    @property
    def symbol(self) -> Optional[Symbol]:
        return getattr(self.fun, 'symbol', None)

    def children(self) -> list[Tree]:
        return [self.fun]


@dataclass(eq=False)
class New(Tree):
    cls: ClassSymbol

    def __post_init__(self) -> None:
        if self.tpe is None:
            self.tpe = ClassType(self.cls)


@dataclass(eq=False)
class Block(Tree):
    stats: list[Tree]
    expr: Tree

    def children(self) -> list[Tree]:
        return [*self.stats, self.expr]


@dataclass(eq=False)
class If(Tree):
    cond: Tree
    thenp: Tree
    elsep: Optional[Tree] = None

    def children(self) -> list[Tree]:
        kids = [self.cond, self.thenp]
        if self.elsep is not None:
            kids.append(self.elsep)
        return kids


@dataclass(eq=False)
class While(Tree):
    cond: Tree
    body: Tree

    def children(self) -> list[Tree]:
        return [self.cond, self.body]


@dataclass(eq=False)
class Assign(Tree):
    lhs: Tree
    rhs: Tree

    def children(self) -> list[Tree]:
        return [self.lhs, self.rhs]


@dataclass(eq=False)
class Return(Tree):
    expr: Tree

    def children(self) -> list[Tree]:
        return [self.expr]


@dataclass(eq=False)
class Throw(Tree):
    expr: Tree

    def children(self) -> list[Tree]:
        return [self.expr]


@dataclass(eq=False)
class CaseDef(Tree):
    """A catch case matching instances of `cls`"""
    cls: ClassSymbol
    body: Tree

    def children(self) -> list[Tree]:
        return [self.body]


@dataclass(eq=False)
class Try(Tree):
    block: Tree
    catches: list[CaseDef] = field(default_factory=list)
    finalizer: Optional[Tree] = None

    def children(self) -> list[Tree]:
        kids: list[Tree] = [self.block, *self.catches]
        if self.finalizer is not None:
            kids.append(self.finalizer)
        return kids


# Definitions

@dataclass(eq=False)
class ValDef(Tree):
    symbol: Symbol
    rhs: Optional[Tree] = None

    def children(self) -> list[Tree]:
        return [self.rhs] if self.rhs is not None else []


@dataclass(eq=False)
class DefDef(Tree):
    symbol: MethodSymbol
    body: Optional[Tree] = None

    def children(self) -> list[Tree]:
        return [self.body] if self.body is not None else []


@dataclass(eq=False)
class Function(Tree):
    """Function literal; its parameters are symbols owned by a synthetic method"""
    params: list[Symbol]
    body: Tree

    def children(self) -> list[Tree]:
        return [self.body]


@dataclass(eq=False)
class TypeDef(Tree):
    symbol: Symbol


@dataclass(eq=False)
class ClassDef(Tree):
    """Class template; non-definition statements in `body` form the constructor"""
    symbol: ClassSymbol
    body: list[Tree] = field(default_factory=list)

    def children(self) -> list[Tree]:
        return list(self.body)


@dataclass(eq=False)
class ModuleDef(Tree):
    symbol: ModuleSymbol
    body: list[Tree] = field(default_factory=list)

    def children(self) -> list[Tree]:
        return list(self.body)


DEFINITIONS = (TypeDef, DefDef, ClassDef, ModuleDef, Function)


@dataclass(frozen=True)
class Applied:
    core: Tree
    targs: list[Type]
    argss: list[list[Tree]]

    @property
    def args(self) -> list[Tree]:
        return [a for args in self.argss for a in args]


def applied(tree: Tree) -> Applied:
    """Split an invocation into its callee, type arguments and argument lists"""
    argss: list[list[Tree]] = []
    while isinstance(tree, Apply):
        argss.insert(0, list(tree.args))
        tree = tree.fun
    targs: list[Type] = []
    if isinstance(tree, TypeApply):
        targs = list(tree.targs)
        tree = tree.fun
    return Applied(tree, targs, argss)
