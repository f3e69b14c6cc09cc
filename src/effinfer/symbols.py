"""Typed program model consumed by effect inference.

Symbols and types are produced by an external type checker; this module only
describes their shape. Symbols compare by identity, so two parameters with
the same name in different methods are different locations.

Raw annotation text (``effect(io)``, ``rel(f.apply)``) is stored on the
symbol and interpreted by the effect domain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union


@dataclass(eq=False)
class Symbol:
    name: str
    owner: Optional["Symbol"] = None
    annotations: list[str] = field(default_factory=list)

    is_method = False
    is_module = False
    is_class = False

    @property
    def is_lazy(self) -> bool:
        return False

    @property
    def is_by_name_param(self) -> bool:
        return False

    @property
    def is_param_accessor(self) -> bool:
        return False

    @property
    def tpe(self) -> Optional["Type"]:
        return None

    def annotate(self, *texts: str) -> "Symbol":
        self.annotations.extend(texts)
        return self

    def __repr__(self) -> str:
        if self.owner is not None:
            return f"{type(self).__name__}({self.owner.name}.{self.name})"
        return f"{type(self).__name__}({self.name})"


class Type:
    """Static type of a tree or symbol"""

    def member(self, name: str) -> Optional[Symbol]:
        return None

    @property
    def class_symbol(self) -> Optional["ClassSymbol"]:
        return None

    @property
    def is_by_name(self) -> bool:
        return False


@dataclass(eq=False, repr=False)
class ClassType(Type):
    symbol: "ClassSymbol"

    def member(self, name: str) -> Optional[Symbol]:
        return self.symbol.member(name)

    @property
    def class_symbol(self) -> "ClassSymbol":
        return self.symbol

    def __repr__(self) -> str:
        return self.symbol.name


@dataclass(eq=False, repr=False)
class ByNameType(Type):
    """Type of a deferred parameter, ``=> T``"""
    underlying: Type

    def member(self, name: str) -> Optional[Symbol]:
        return self.underlying.member(name)

    @property
    def class_symbol(self) -> Optional["ClassSymbol"]:
        return self.underlying.class_symbol

    @property
    def is_by_name(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"=> {self.underlying!r}"


@dataclass(eq=False, repr=False)
class ParamSymbol(Symbol):
    param_type: Optional[Type] = None
    by_name: bool = False

    @property
    def is_by_name_param(self) -> bool:
        return self.by_name

    @property
    def tpe(self) -> Optional[Type]:
        if self.by_name and self.param_type is not None:
            return ByNameType(self.param_type)
        return self.param_type


@dataclass(eq=False, repr=False)
class ValSymbol(Symbol):
    val_type: Optional[Type] = None
    lazy: bool = False
    param_accessor: bool = False

    @property
    def is_lazy(self) -> bool:
        return self.lazy

    @property
    def is_param_accessor(self) -> bool:
        return self.param_accessor

    @property
    def tpe(self) -> Optional[Type]:
        return self.val_type


@dataclass(eq=False, repr=False)
class MethodSymbol(Symbol):
    paramss: list[list[ParamSymbol]] = field(default_factory=list)
    result: Optional[Type] = None
    is_constructor: bool = False

    is_method = True

    def __post_init__(self) -> None:
        for params in self.paramss:
            for p in params:
                p.owner = self

    @property
    def params(self) -> list[ParamSymbol]:
        return [p for params in self.paramss for p in params]

    def param(self, name: str) -> Optional[ParamSymbol]:
        for p in self.params:
            if p.name == name:
                return p
        return None

    def add_params(self, *params: ParamSymbol) -> "MethodSymbol":
        """Append a parameter list"""
        for p in params:
            p.owner = self
        self.paramss.append(list(params))
        return self

    def overrides(self, other: Symbol) -> bool:
        """True if this method overrides `other` in a subclass"""
        if other is self or other.name != self.name:
            return False
        own, base = self.owner, other.owner
        if not isinstance(own, ClassSymbol) or not isinstance(base, ClassSymbol):
            return False
        return own is not base and own.is_subclass(base)

    @property
    def tpe(self) -> Optional[Type]:
        return self.result


@dataclass(eq=False, repr=False)
class ClassSymbol(Symbol):
    parents: list["ClassSymbol"] = field(default_factory=list)
    members: dict[str, Symbol] = field(default_factory=dict)
    primary_constructor: Optional[MethodSymbol] = None
    is_function: bool = False

    is_class = True

    def linearization(self) -> list["ClassSymbol"]:
        """This class followed by its base classes, most specific first.

        Later parents come before earlier ones, and a base class shared by
        several parents appears once, after all of its subclasses.
        """
        bases: list[ClassSymbol] = []
        for parent in self.parents:
            # bases already hold every ancestor of the classes they contain,
            # so new classes are never superclasses of those
            lin = parent.linearization()
            bases = [c for c in lin if not any(c is b for b in bases)] + bases
        return [self] + bases

    def is_subclass(self, other: "ClassSymbol") -> bool:
        return any(c is other for c in self.linearization())

    def member(self, name: str) -> Optional[Symbol]:
        for cls in self.linearization():
            if name in cls.members:
                return cls.members[name]
        return None

    def declare(self, sym: Symbol) -> Symbol:
        sym.owner = self
        self.members[sym.name] = sym
        return sym

    def method(self, name: str, *params: ParamSymbol, result: Optional[Type] = None,
               annotations: Iterable[str] = ()) -> MethodSymbol:
        m = MethodSymbol(name, annotations=list(annotations), result=result)
        if params:
            m.add_params(*params)
        self.declare(m)
        return m

    def constructor(self, *params: ParamSymbol, annotations: Iterable[str] = ()) -> MethodSymbol:
        ctor = MethodSymbol("<init>", annotations=list(annotations), is_constructor=True,
                            result=ClassType(self))
        ctor.add_params(*params)
        self.declare(ctor)
        self.primary_constructor = ctor
        return ctor

    def val(self, name: str, tpe: Optional[Type] = None, *, lazy: bool = False,
            param_accessor: bool = False, annotations: Iterable[str] = ()) -> ValSymbol:
        v = ValSymbol(name, annotations=list(annotations), val_type=tpe, lazy=lazy,
                      param_accessor=param_accessor)
        self.declare(v)
        return v

    @property
    def tpe(self) -> ClassType:
        return ClassType(self)


@dataclass(eq=False, repr=False)
class ModuleSymbol(Symbol):
    """A singleton object; accessing it runs its class constructor once"""
    module_class: Optional[ClassSymbol] = None

    is_module = True

    @property
    def tpe(self) -> Optional[Type]:
        return ClassType(self.module_class) if self.module_class is not None else None


def function_class(name: str = "Function1", arity: int = 1) -> ClassSymbol:
    """Create a function class with an abstract `apply` of the given arity"""
    cls = ClassSymbol(name, is_function=True)
    cls.method("apply", *(ParamSymbol(f"v{i + 1}") for i in range(arity)))
    return cls


def function_literal_class(base: ClassSymbol, annotations: Iterable[str] = (),
                           name: Optional[str] = None) -> ClassSymbol:
    """Anonymous subclass of a function class whose `apply` carries `annotations`.

    This is the static type a type checker assigns to a function literal or an
    eta-expanded method reference.
    """
    apply = base.member("apply")
    arity = len(apply.params) if isinstance(apply, MethodSymbol) else 0
    cls = ClassSymbol(name or f"<anon {base.name}>", parents=[base], is_function=True)
    cls.method("apply", *(ParamSymbol(f"v{i + 1}") for i in range(arity)),
               annotations=annotations)
    return cls


# Member resolution: for a static type and an operation declared somewhere in
# its base classes, find the most specific implementation.

@dataclass(frozen=True)
class PrimaryMember:
    symbol: Symbol


@dataclass(frozen=True)
class OverridingMember:
    symbol: Symbol
    overridden: Symbol


MemberResolution = Union[PrimaryMember, OverridingMember]


def resolve_member(tpe: Optional[Type], fun: Symbol) -> Optional[MemberResolution]:
    cls = tpe.class_symbol if tpe is not None else None
    if cls is None:
        return None
    for base in cls.linearization():
        m = base.members.get(fun.name)
        if m is None:
            continue
        if m is fun:
            return PrimaryMember(m)
        if isinstance(m, MethodSymbol) and m.overrides(fun):
            return OverridingMember(m, overridden=fun)
    return None
