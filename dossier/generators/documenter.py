"""Documentation driver: resolves every registered type into a page record."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from dossier.analysis.members import PropertyDocs
from dossier.analysis.registry import TypeRegistry
from dossier.analysis.types import NominalType, TypeGraphError
from dossier.generators.comment_parser import CommentParser
from dossier.generators.link_factory import LinkFactory
from dossier.generators.type_inspector import TypeInspector
from dossier.output.documents import EMPTY_COMMENT, Comment, Function, Report, SourceLink

logger = logging.getLogger(__name__)


@dataclass
class TypeDocumentation:
    """Everything rendered onto one type's page.

    Attributes:
        name: Qualified type name.
        kind: ``class``, ``interface``, ``namespace``, ``module`` or ``type``.
        page: Output file name of the page.
        description: Rendered type description.
        summary: First sentence of the description.
        source: Declaration site.
        static_report: Members defined directly on the type.
        instance_report: Instance members, for classes and interfaces.
        constructor: Constructor descriptor, for classes.
    """

    name: str
    kind: str
    page: str
    description: Comment = EMPTY_COMMENT
    summary: Comment = EMPTY_COMMENT
    source: SourceLink = field(default_factory=SourceLink)
    static_report: Report = field(default_factory=Report)
    instance_report: Report = field(default_factory=Report)
    constructor: Optional[Function] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary.

        Returns:
            Dictionary representation of the page record.
        """
        return {
            "name": self.name,
            "kind": self.kind,
            "page": self.page,
            "description": self.description.to_dict(),
            "summary": self.summary.to_dict(),
            "source": self.source.to_dict(),
            "static": self.static_report.to_dict(),
            "instance": self.instance_report.to_dict(),
            "constructor": self.constructor.to_dict() if self.constructor else None,
        }


def type_kind(nominal: NominalType) -> str:
    if nominal.is_module_exports():
        return "module"
    if nominal.is_interface():
        return "interface"
    if nominal.is_constructor():
        return "class"
    if nominal.is_namespace():
        return "namespace"
    return "type"


class Documenter:
    """Runs a TypeInspector over every registered type."""

    def __init__(
        self,
        registry: TypeRegistry,
        comment_parser: Optional[CommentParser] = None,
        type_filters: Iterable[str] = (),
    ) -> None:
        """Initialize the documenter.

        Args:
            registry: Populated type registry.
            comment_parser: Doc text renderer; a default one if omitted.
            type_filters: Regular expressions over qualified names; matching
                types and static members are left undocumented.
        """
        self.registry = registry
        self.parser = comment_parser or CommentParser()
        self.link_factory = LinkFactory(registry)
        self._filters = [re.compile(pattern) for pattern in type_filters]

    def is_filtered(self, name: str) -> bool:
        return any(f.search(name) for f in self._filters)

    def document_type(self, nominal: NominalType) -> TypeDocumentation:
        """Resolve the documentation of one type.

        Args:
            nominal: The type to document.

        Returns:
            The page record.

        Raises:
            TypeGraphError: If the type graph around ``nominal`` breaks
                its contract.
        """
        inspector = TypeInspector(
            self.registry, self.parser, self.link_factory, nominal, self.is_filtered
        )
        doc = TypeDocumentation(
            name=nominal.name,
            kind=type_kind(nominal),
            page=LinkFactory.page_path(nominal),
            description=inspector.get_type_description(),
            summary=inspector.get_type_summary(),
            source=self.link_factory.create_source_link(nominal.position),
            static_report=inspector.inspect_type(),
            instance_report=inspector.inspect_instance_type(),
        )
        if nominal.is_constructor():
            doc.constructor = inspector.get_function_data(
                nominal.name.rsplit(".", 1)[-1],
                nominal.type,
                nominal.position,
                PropertyDocs(nominal, nominal.jsdoc),
            )
        return doc

    def document_all(self) -> list[TypeDocumentation]:
        """Document every registered type, sorted by name.

        A type whose graph is inconsistent is logged and skipped.

        Returns:
            Page records in name order.
        """
        docs = []
        for nominal in self.registry.types:
            if self.is_filtered(nominal.name):
                logger.debug("Filtered out type %s", nominal.name)
                continue
            try:
                docs.append(self.document_type(nominal))
            except TypeGraphError as e:
                logger.warning("Cannot document %s: %s", nominal.name, e)
        logger.info("Documented %d types", len(docs))
        return docs
