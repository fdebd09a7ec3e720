"""Shared fixtures for building type graphs directly in Python."""

from collections.abc import Sequence
from typing import Optional

import pytest

from dossier.analysis.registry import TypeRegistry
from dossier.analysis.types import (
    UNKNOWN,
    FunctionType,
    JsType,
    Module,
    NamespaceType,
    NominalType,
    PropertySlot,
    SourcePosition,
)
from dossier.generators.comment_parser import CommentParser
from dossier.generators.link_factory import LinkFactory
from dossier.generators.type_inspector import TypeInspector
from dossier.parsers.jsdoc import parse_jsdoc


class GraphHelper:
    """Declares classes, interfaces and members on a registry."""

    def __init__(self, registry: TypeRegistry) -> None:
        self.registry = registry
        self.parser = CommentParser()

    def add_class(
        self,
        name: str,
        doc: str = "",
        extends: Optional[NominalType] = None,
        implements: Sequence[NominalType] = (),
        source_file: str = "test.js",
        module: Optional[Module] = None,
    ) -> NominalType:
        super_class = extends.type if extends is not None else None
        ctor = FunctionType.for_class(name, super_class=super_class)
        ctor.implemented_interfaces.extend(i.type for i in implements)
        return self._register(name, ctor, doc, source_file, module)

    def add_interface(
        self,
        name: str,
        doc: str = "",
        extends: Sequence[NominalType] = (),
        source_file: str = "test.js",
    ) -> NominalType:
        ctor = FunctionType.for_interface(name)
        ctor.extended_interfaces.extend(i.type for i in extends)
        return self._register(name, ctor, doc, source_file, None)

    def add_namespace(self, name: str, doc: str = "", module: Optional[Module] = None) -> NominalType:
        return self._register(name, NamespaceType(name=name), doc, "test.js", module)

    def add_method(
        self,
        owner: NominalType,
        name: str,
        doc: str = "",
        parameters: Sequence[JsType] = (),
        return_type: JsType = UNKNOWN,
        param_names: Optional[tuple[str, ...]] = None,
    ) -> PropertySlot:
        prototype = owner.type.prototype
        function = FunctionType(name=name, parameters=tuple(parameters), return_type=return_type)
        return prototype.define_slot(
            PropertySlot(
                name, function, parse_jsdoc(doc), SourcePosition("test.js", 10, param_names)
            )
        )

    def add_field(
        self, owner: NominalType, name: str, doc: str = "", js_type: JsType = UNKNOWN
    ) -> PropertySlot:
        instance = owner.type.get_instance_type()
        return instance.define_slot(
            PropertySlot(name, js_type, parse_jsdoc(doc), SourcePosition("test.js", 20))
        )

    def add_static(
        self, owner: NominalType, name: str, js_type: JsType = UNKNOWN, doc: str = ""
    ) -> PropertySlot:
        return owner.type.define_slot(
            PropertySlot(name, js_type, parse_jsdoc(doc), SourcePosition("test.js", 30))
        )

    def inspector(self, nominal: NominalType, type_filter=None) -> TypeInspector:
        return TypeInspector(
            self.registry, self.parser, LinkFactory(self.registry), nominal, type_filter
        )

    def _register(
        self,
        name: str,
        js_type: JsType,
        doc: str,
        source_file: str,
        module: Optional[Module],
    ) -> NominalType:
        return self.registry.register(
            NominalType(
                name=name,
                type=js_type,
                jsdoc=parse_jsdoc(doc),
                module=module,
                source_file=source_file,
                position=SourcePosition(source_file, 1),
            )
        )


@pytest.fixture
def registry() -> TypeRegistry:
    """Create an empty type registry."""
    return TypeRegistry()


@pytest.fixture
def graph(registry: TypeRegistry) -> GraphHelper:
    """Create a graph helper bound to the registry fixture."""
    return GraphHelper(registry)


@pytest.fixture
def comment_parser() -> CommentParser:
    """Create a CommentParser with the default extensions."""
    return CommentParser()


@pytest.fixture
def link_factory(registry: TypeRegistry) -> LinkFactory:
    """Create a LinkFactory with no type context."""
    return LinkFactory(registry)
