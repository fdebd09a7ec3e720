"""Hyperlink resolution for symbol references in documentation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from dossier.analysis.registry import TypeRegistry
from dossier.analysis.types import NominalType, SourcePosition
from dossier.output.documents import SourceLink

logger = logging.getLogger(__name__)

MDN_PREFIX = "https://developer.mozilla.org/en-US/docs/Web/JavaScript/Reference/"

_EXTERNS = {
    "Array": "Global_Objects/Array",
    "Boolean": "Global_Objects/Boolean",
    "Date": "Global_Objects/Date",
    "Error": "Global_Objects/Error",
    "Function": "Global_Objects/Function",
    "Map": "Global_Objects/Map",
    "Number": "Global_Objects/Number",
    "Object": "Global_Objects/Object",
    "Promise": "Global_Objects/Promise",
    "RangeError": "Global_Objects/RangeError",
    "RegExp": "Global_Objects/RegExp",
    "Set": "Global_Objects/Set",
    "String": "Global_Objects/String",
    "Symbol": "Global_Objects/Symbol",
    "TypeError": "Global_Objects/TypeError",
    "WeakMap": "Global_Objects/WeakMap",
    "WeakSet": "Global_Objects/WeakSet",
    "boolean": "Global_Objects/Boolean",
    "null": "Global_Objects/null",
    "number": "Global_Objects/Number",
    "string": "Global_Objects/String",
    "symbol": "Global_Objects/Symbol",
    "undefined": "Global_Objects/undefined",
}

_PAGE_UNSAFE = re.compile(r"[./:]")


@dataclass(frozen=True)
class TypeLink:
    """A link's display text and target; an empty href means unresolved."""

    text: str
    href: str = ""


class LinkFactory:
    """Resolves symbol references to documentation page links.

    Every nominal type gets its own page in a flat output directory;
    members are addressed with a ``#name`` fragment on their owner's page.
    Relative references (``#member``, module-local aliases) resolve
    against the factory's type context.
    """

    def __init__(self, registry: TypeRegistry, context: Optional[NominalType] = None) -> None:
        """Initialize the factory.

        Args:
            registry: Registry of documented types.
            context: Type whose scope relative references resolve in.
        """
        self.registry = registry
        self._context = context

    @property
    def type_context(self) -> Optional[NominalType]:
        return self._context

    def with_type_context(self, context: Optional[NominalType]) -> LinkFactory:
        """Return a copy of this factory scoped to ``context``."""
        if context is self._context:
            return self
        return LinkFactory(self.registry, context)

    @staticmethod
    def page_path(nominal: NominalType) -> str:
        return _PAGE_UNSAFE.sub("_", nominal.name) + ".html"

    def resolve_type(self, symbol: str) -> Optional[NominalType]:
        """Resolve a symbol name to a registered type.

        Args:
            symbol: Qualified, module-local or aliased name.

        Returns:
            The registered type, or None.
        """
        nominal = self.registry.get_type(symbol)
        if nominal is not None:
            return nominal

        alias = self.registry.resolve_alias(self._context, symbol)
        if alias is not None:
            nominal = self.registry.get_type(alias)
            if nominal is not None:
                return nominal

        if self._context is not None and self._context.module is not None:
            return self.registry.get_type(f"{self._context.module.id}.{symbol}")
        return None

    def create_link(self, target: Union[str, NominalType], fragment: str = "") -> TypeLink:
        """Create a link to a type or symbol reference.

        Args:
            target: A registered type, or a symbol reference such as
                ``Foo``, ``Foo#bar``, ``Foo.prototype.bar``, ``Foo.baz``
                or ``#bar``.
            fragment: Optional ``#member`` fragment for type targets.

        Returns:
            The resolved link, or a link with an empty href when the
            reference cannot be resolved.
        """
        if isinstance(target, NominalType):
            return TypeLink(text=target.name + fragment, href=self.page_path(target) + fragment)

        symbol = target.strip()
        if symbol.endswith("()"):
            symbol = symbol[:-2]
        if not symbol:
            return TypeLink(text=target)

        if symbol.startswith("#"):
            if self._context is None:
                return TypeLink(text=symbol)
            return TypeLink(text=symbol, href=self.page_path(self._context) + symbol)

        nominal = self.resolve_type(symbol)
        if nominal is not None:
            return TypeLink(text=symbol, href=self.page_path(nominal))

        link = self._member_link(symbol)
        if link is not None:
            return link

        extern = _EXTERNS.get(symbol)
        if extern is not None:
            return TypeLink(text=symbol, href=MDN_PREFIX + extern)

        logger.debug("No link for symbol %s", symbol)
        return TypeLink(text=symbol)

    def _member_link(self, symbol: str) -> Optional[TypeLink]:
        if "#" in symbol:
            type_name, _, member = symbol.partition("#")
        elif ".prototype." in symbol:
            type_name, _, member = symbol.partition(".prototype.")
        elif "." in symbol:
            type_name, _, member = symbol.rpartition(".")
        else:
            return None

        owner = self.resolve_type(type_name) if type_name else self._context
        if owner is None or not member:
            return None
        return TypeLink(text=symbol, href=f"{self.page_path(owner)}#{member}")

    def create_source_link(self, position: SourcePosition) -> SourceLink:
        return SourceLink(path=position.path, line=position.line)
