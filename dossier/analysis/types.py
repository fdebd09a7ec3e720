"""Resolved type graph consumed by the documentation resolver.

The graph is built once by the front-end (see ``graph_builder``) and is
only read afterwards. Type descriptors compare by identity: two distinct
declarations with the same shape are still two types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from dossier.parsers.jsdoc import EMPTY_JSDOC, JsDoc


class TypeGraphError(AssertionError):
    """The type graph handed to the resolver breaks its contract.

    These signal a defect upstream of documentation resolution and halt
    processing of the affected symbol.
    """


@dataclass(frozen=True)
class SourcePosition:
    """Where a symbol was declared.

    Attributes:
        path: Source file path.
        line: 1-based line number, 0 when unknown.
        param_names: Physical parameter names when the declaration is a
            function literal, None otherwise.
    """

    path: str = ""
    line: int = 0
    param_names: Optional[tuple[str, ...]] = None


class JsType:
    """Base class for resolved type descriptors."""

    def is_unknown(self) -> bool:
        return False

    def is_function(self) -> bool:
        return False

    def is_constructor(self) -> bool:
        return False

    def is_interface(self) -> bool:
        return False

    def is_instance(self) -> bool:
        return False

    def is_function_prototype(self) -> bool:
        return False

    def is_templatized(self) -> bool:
        return False

    def to_object(self) -> Optional[ObjectType]:
        return None


@dataclass(eq=False)
class UnknownType(JsType):
    """The ``?`` type: nothing is known about the value."""

    def is_unknown(self) -> bool:
        return True


UNKNOWN = UnknownType()


@dataclass(eq=False)
class NamedType(JsType):
    """A type known only by name: primitives, externs, unresolved references."""

    name: str


@dataclass(eq=False)
class UnionType(JsType):
    alternates: tuple[JsType, ...]


@dataclass(eq=False)
class TemplatizedType(JsType):
    """A generic type applied to arguments, e.g. ``Array<string>``."""

    referenced: JsType
    template_args: tuple[JsType, ...] = ()

    def is_templatized(self) -> bool:
        return True

    def is_instance(self) -> bool:
        return self.referenced.is_instance()

    def to_object(self) -> Optional[ObjectType]:
        return self.referenced.to_object()


@dataclass(eq=False)
class RecordType(JsType):
    fields: tuple[tuple[str, JsType], ...] = ()


@dataclass(eq=False)
class PropertySlot:
    """A named property physically present on an object type."""

    name: str
    type: JsType = UNKNOWN
    jsdoc: JsDoc = EMPTY_JSDOC
    position: SourcePosition = SourcePosition()


@dataclass(eq=False)
class ObjectType(JsType):
    """A type with own property slots."""

    slots: dict[str, PropertySlot] = field(default_factory=dict, repr=False)

    def to_object(self) -> Optional[ObjectType]:
        return self

    def own_property_names(self) -> list[str]:
        return list(self.slots)

    def own_property_slots(self) -> list[PropertySlot]:
        return list(self.slots.values())

    def own_slot(self, name: str) -> Optional[PropertySlot]:
        return self.slots.get(name)

    def define_slot(self, slot: PropertySlot) -> PropertySlot:
        self.slots[slot.name] = slot
        return slot

    def implicit_prototype(self) -> Optional[ObjectType]:
        return None

    def find_property_type(self, name: str) -> JsType:
        """Find the declared type of a property along the prototype chain.

        Args:
            name: Property name.

        Returns:
            The first known type found, or UNKNOWN.
        """
        current: Optional[ObjectType] = self
        seen: set[int] = set()
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            slot = current.own_slot(name)
            if slot is not None and not slot.type.is_unknown():
                return slot.type
            current = current.implicit_prototype()
        return UNKNOWN


@dataclass(eq=False)
class NamespaceType(ObjectType):
    """A plain object: a namespace or a module's exports object."""

    name: str = ""


class FunctionKind(str, Enum):
    ORDINARY = "ordinary"
    CONSTRUCTOR = "constructor"
    INTERFACE = "interface"


@dataclass(eq=False)
class FunctionType(ObjectType):
    """A callable type.

    Constructors and interfaces additionally own an instance type and a
    prototype object; the prototype holds the shared (method) slots and the
    instance type holds per-instance fields.
    """

    name: str = ""
    kind: FunctionKind = FunctionKind.ORDINARY
    parameters: tuple[JsType, ...] = ()
    return_type: JsType = UNKNOWN
    super_class: Optional[FunctionType] = field(default=None, repr=False)
    implemented_interfaces: list[FunctionType] = field(default_factory=list, repr=False)
    extended_interfaces: list[FunctionType] = field(default_factory=list, repr=False)
    instance_type: Optional[InstanceType] = field(default=None, repr=False)
    prototype: Optional[PrototypeType] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.kind is not FunctionKind.ORDINARY:
            if self.instance_type is None:
                self.instance_type = InstanceType(constructor=self)
            if self.prototype is None:
                self.prototype = PrototypeType(owner_function=self)

    @classmethod
    def for_class(
        cls, name: str, super_class: Optional[FunctionType] = None
    ) -> FunctionType:
        return cls(name=name, kind=FunctionKind.CONSTRUCTOR, super_class=super_class)

    @classmethod
    def for_interface(cls, name: str) -> FunctionType:
        return cls(name=name, kind=FunctionKind.INTERFACE)

    def is_function(self) -> bool:
        return True

    def is_constructor(self) -> bool:
        return self.kind is FunctionKind.CONSTRUCTOR

    def is_interface(self) -> bool:
        return self.kind is FunctionKind.INTERFACE

    def get_instance_type(self) -> InstanceType:
        if self.instance_type is None:
            raise TypeGraphError(f"{self.name or 'function'} has no instance type")
        return self.instance_type

    def declared_interfaces(self) -> list[FunctionType]:
        """Interfaces declared directly on this type, in declaration order."""
        if self.is_interface():
            return list(self.extended_interfaces)
        return list(self.implemented_interfaces)

    def prototype_chain(self) -> list[FunctionType]:
        """This constructor followed by its superclasses, nearest first."""
        chain: list[FunctionType] = []
        current: Optional[FunctionType] = self
        while current is not None and all(current is not c for c in chain):
            chain.append(current)
            current = current.super_class
        return chain


@dataclass(eq=False)
class InstanceType(ObjectType):
    """The type of values created by a constructor (or implementing an interface)."""

    constructor: Optional[FunctionType] = field(default=None, repr=False)

    def is_instance(self) -> bool:
        return True

    def implicit_prototype(self) -> Optional[ObjectType]:
        if self.constructor is None:
            return None
        return self.constructor.prototype

    def declared_interfaces(self) -> list[FunctionType]:
        if self.constructor is None:
            return []
        return self.constructor.declared_interfaces()

    def type_hierarchy(self) -> list[InstanceType]:
        """This instance type followed by its superclass instance types."""
        if self.constructor is None:
            return [self]
        return [ctor.get_instance_type() for ctor in self.constructor.prototype_chain()]

    def __repr__(self) -> str:
        owner = self.constructor.name if self.constructor else "?"
        return f"InstanceType({owner})"


@dataclass(eq=False)
class PrototypeType(ObjectType):
    """The prototype object of a constructor or interface."""

    owner_function: Optional[FunctionType] = field(default=None, repr=False)

    def is_function_prototype(self) -> bool:
        return True

    def implicit_prototype(self) -> Optional[ObjectType]:
        if self.owner_function is None or self.owner_function.super_class is None:
            return None
        return self.owner_function.super_class.prototype

    def __repr__(self) -> str:
        owner = self.owner_function.name if self.owner_function else "?"
        return f"PrototypeType({owner})"


class ModuleKind(str, Enum):
    ES6 = "es6"
    CLOSURE = "closure"
    NODE = "node"


@dataclass(eq=False)
class Module:
    """A source file whose exports form a namespace.

    Attributes:
        id: Module identifier; also the name of its exports namespace.
        path: Source file path.
        kind: Module system the file uses.
        jsdoc: The file-level doc comment.
        exported_names: Export name to internal binding name.
        internal_var_docs: Internal binding name to its doc comment.
    """

    id: str
    path: str = ""
    kind: ModuleKind = ModuleKind.ES6
    jsdoc: JsDoc = EMPTY_JSDOC
    exported_names: dict[str, str] = field(default_factory=dict)
    internal_var_docs: dict[str, JsDoc] = field(default_factory=dict)


@dataclass(eq=False)
class NominalType:
    """A named, independently documented entity."""

    name: str
    type: JsType
    jsdoc: JsDoc = EMPTY_JSDOC
    module: Optional[Module] = field(default=None, repr=False)
    source_file: str = ""
    position: SourcePosition = SourcePosition()

    def is_module_exports(self) -> bool:
        return self.module is not None and self.module.id == self.name

    def is_namespace(self) -> bool:
        return isinstance(self.type, NamespaceType) and not self.is_module_exports()

    def is_constructor(self) -> bool:
        return self.type.is_constructor()

    def is_interface(self) -> bool:
        return self.type.is_interface()
