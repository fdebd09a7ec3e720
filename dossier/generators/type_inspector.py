"""Member resolution for documented types.

For a nominal type the inspector produces its rendered description and
two reports: the static members found directly on the type, and the
instance members gathered across its superclasses and interfaces. For
each instance member exactly one descriptor is produced, combining the
docs, types, visibility and override links of every declaration of that
name in the hierarchy.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import Optional

from dossier.analysis.members import MemberRecord, PropertyDocs, collect_candidates
from dossier.analysis.registry import TypeRegistry
from dossier.analysis.types import (
    FunctionType,
    InstanceType,
    JsType,
    ModuleKind,
    NominalType,
    PropertySlot,
    SourcePosition,
    TemplatizedType,
    TypeGraphError,
)
from dossier.generators.comment_parser import CommentParser, extract_summary
from dossier.generators.link_factory import LinkFactory
from dossier.generators.type_expression import TypeExpressionRenderer, is_vacuous
from dossier.output.documents import (
    EMPTY_COMMENT,
    BaseProperty,
    Comment,
    Detail,
    Function,
    Property,
    Report,
)
from dossier.parsers.jsdoc import EMPTY_JSDOC, JsDoc, Visibility

logger = logging.getLogger(__name__)

URI_PATTERN = re.compile(
    r"^\s*https?://"
    r"(?P<authority>[^/?#]+)"
    r"(?P<path>/[^?#]*)?"
    r"(?P<query>\?[^#]*)?"
    r"(?P<fragment>#.*)?"
    r"\s*$",
    re.IGNORECASE,
)

_BUILTIN_FUNCTION_PROPERTIES = frozenset({"apply", "bind", "call", "prototype"})
_MAX_STATIC_DOC_HOPS = 16

JsDocPredicate = Callable[[JsDoc], bool]


def strip_hash(text: str) -> str:
    return text.split("#", 1)[0]


def strip_template_type_information(js_type: JsType) -> JsType:
    if isinstance(js_type, TemplatizedType):
        return js_type.referenced
    return js_type


def _has_block_comment(jsdoc: JsDoc) -> bool:
    return bool(jsdoc.block_comment)


def _has_return(jsdoc: JsDoc) -> bool:
    return jsdoc.has_return


def _has_return_type(jsdoc: JsDoc) -> bool:
    return jsdoc.has_return_type


def _has_named_parameters(jsdoc: JsDoc) -> bool:
    return any(p.name or p.description for p in jsdoc.parameters)


class TypeInspector:
    """Resolves the documentation of one nominal type.

    All links in the produced comments are computed from the inspected
    type's page.
    """

    def __init__(
        self,
        registry: TypeRegistry,
        comment_parser: CommentParser,
        link_factory: LinkFactory,
        inspected_type: NominalType,
        type_filter: Optional[Callable[[str], bool]] = None,
    ) -> None:
        """Initialize the inspector.

        Args:
            registry: Registry of documented types.
            comment_parser: Renders doc text.
            link_factory: Base link factory; re-scoped per fragment.
            inspected_type: The type to document.
            type_filter: Predicate over qualified names; matching static
                members are left out.
        """
        self.registry = registry
        self.parser = comment_parser
        self.inspected_type = inspected_type
        self.link_factory = link_factory.with_type_context(inspected_type)
        self.type_filter = type_filter or (lambda name: False)

    # Type descriptions

    def get_type_description(
        self, nominal: Optional[NominalType] = None, summary_only: bool = False
    ) -> Comment:
        """Return the rendered description of a type.

        The first non-empty block comment found is used: the type's own,
        its module's (for a module's exports object), the docs of the
        internal binding behind a module export, and finally the docs of
        the type's canonical alias.

        Args:
            nominal: Type to describe; defaults to the inspected type.
            summary_only: Only render the first sentence.

        Returns:
            The rendered description, or EMPTY_COMMENT.
        """
        return self._describe(nominal or self.inspected_type, summary_only, [])

    def get_type_summary(self) -> Comment:
        return self.get_type_description(self.inspected_type, summary_only=True)

    def _describe(
        self, nominal: NominalType, summary_only: bool, visited: list[NominalType]
    ) -> Comment:
        if any(nominal is v for v in visited):
            logger.warning("Description lookup for %s loops back on itself", nominal.name)
            return EMPTY_COMMENT
        visited.append(nominal)

        block = nominal.jsdoc.block_comment
        if block:
            return self._parse_description(nominal, block, summary_only)

        module = nominal.module
        if module is not None and nominal.is_module_exports():
            if module.jsdoc.block_comment:
                return self._parse_description(nominal, module.jsdoc.block_comment, summary_only)

        elif module is not None and nominal.name.startswith(module.id + "."):
            exported_name = nominal.name[len(module.id) + 1 :]
            internal_name = module.exported_names.get(exported_name)
            if internal_name:
                internal_docs = module.internal_var_docs.get(internal_name, EMPTY_JSDOC)
                if internal_docs.block_comment:
                    return self._parse_description(
                        nominal, internal_docs.block_comment, summary_only
                    )
                resolved = self.link_factory.with_type_context(nominal).resolve_type(
                    internal_name
                )
                if resolved is not None and resolved is not nominal:
                    logger.debug("Following export %s to %s", nominal.name, resolved.name)
                    comment = self._describe(resolved, summary_only, visited)
                    if not comment.is_empty:
                        return comment

        aliases = self.registry.get_types(nominal.type)
        if aliases and aliases[0] is not nominal:
            return self._describe(aliases[0], summary_only, visited)

        return EMPTY_COMMENT

    def _parse_description(self, context: NominalType, text: str, summary_only: bool) -> Comment:
        if summary_only:
            text = extract_summary(text)
        return self.parser.parse_comment(text, self.link_factory.with_type_context(context))

    # Static members

    def inspect_type(self) -> Report:
        """Report the members defined directly on the inspected type.

        For classes and interfaces these are the static members.

        Returns:
            Functions, properties and compiler constants sorted by name.
        """
        inspected = self.inspected_type
        report = Report()
        slots = sorted(self.get_properties(inspected), key=lambda s: s.name)

        for slot in slots:
            name = slot.name
            if not inspected.is_module_exports() and not inspected.is_namespace():
                name = f"{inspected.name.rsplit('.', 1)[-1]}.{name}"

            docs = self._find_static_property_docs(inspected, slot)
            if docs.jsdoc.visibility is Visibility.PRIVATE or (
                name.endswith(".superClass_") and slot.type.is_function_prototype()
            ):
                continue

            if docs.jsdoc.is_define:
                name = f"{inspected.name}.{slot.name}"
                report.compiler_constants.append(
                    self._property_data(name, slot.type, slot.position, docs)
                )
            elif slot.type.is_function():
                report.functions.append(
                    self.get_function_data(name, slot.type, slot.position, docs)
                )
            else:
                report.properties.append(self._property_data(name, slot.type, slot.position, docs))

        return report

    def get_properties(self, nominal: NominalType) -> list[PropertySlot]:
        """Return the static property slots of a type worth documenting.

        Slots whose value is documented as a type of its own are left
        out, except for modules exported from a module. Slots whose
        qualified name matches the type filter are left out.

        Args:
            nominal: The type whose own slots are listed.

        Returns:
            Slots in declaration order.
        """
        js_type = nominal.type
        obj = js_type.to_object()
        if obj is None:
            return []

        properties = []
        for slot in obj.own_property_slots():
            if js_type.is_function():
                if slot.name in _BUILTIN_FUNCTION_PROPERTIES:
                    continue
            elif slot.name == "prototype":
                continue

            qualified_name = f"{nominal.name}.{slot.name}"
            is_nested_module = self.inspected_type.is_module_exports() and self.registry.is_module(
                slot.type
            )
            if (is_nested_module or not self.registry.get_types(slot.type)) and not self.type_filter(
                qualified_name
            ):
                properties.append(slot)
        return properties

    def _find_static_property_docs(
        self, owner: NominalType, slot: PropertySlot, hops: int = 0
    ) -> PropertyDocs:
        """Find the docs for a static property.

        A module export without docs of its own borrows them from the
        internal binding it exports, or from the type or static property
        that binding refers to.
        """
        jsdoc = slot.jsdoc
        if not jsdoc.is_empty or not owner.is_module_exports() or owner.module is None:
            return PropertyDocs(owner, jsdoc)

        module = owner.module
        internal_name = module.exported_names.get(slot.name)
        if not internal_name:
            return PropertyDocs(owner, jsdoc)

        jsdoc = module.internal_var_docs.get(internal_name, EMPTY_JSDOC)
        if not jsdoc.is_empty:
            return PropertyDocs(owner, jsdoc)

        resolved = self.registry.resolve_alias(owner, internal_name)
        if resolved is not None:
            internal_name = resolved

        target = self.registry.get_type(internal_name)
        if target is not None:
            if target.is_module_exports():
                return PropertyDocs(owner, jsdoc)
            return PropertyDocs(target, target.jsdoc)

        type_name, _, member = internal_name.partition(".")
        target = self.registry.get_type(type_name) if member else None
        if target is not None:
            obj = target.type.to_object()
            target_slot = obj.own_slot(member) if obj is not None else None
            if target_slot is not None:
                if hops >= _MAX_STATIC_DOC_HOPS:
                    logger.warning("Giving up doc lookup for %s.%s", owner.name, slot.name)
                    return PropertyDocs(owner, jsdoc)
                return self._find_static_property_docs(target, target_slot, hops + 1)

        return PropertyDocs(owner, jsdoc)

    # Instance members

    def inspect_instance_type(self) -> Report:
        """Report the instance members of the inspected class or interface.

        Returns:
            One descriptor per member name, sorted by name. Empty for any
            other kind of type.

        Raises:
            TypeGraphError: If the type graph breaks its contract.
        """
        inspected = self.inspected_type
        js_type = inspected.type
        report = Report()
        if not isinstance(js_type, FunctionType) or not (
            js_type.is_constructor() or js_type.is_interface()
        ):
            return report

        current_type = js_type.get_instance_type()
        for name, candidates in collect_candidates(js_type, self.registry).items():
            value_type = next(
                (c.type for c in candidates if not c.type.is_unknown()), candidates[0].type
            )
            member, overrides = candidates[0], candidates[1:]
            if member.jsdoc.visibility is Visibility.PRIVATE:
                continue

            owner = member.owner_type or inspected
            docs = PropertyDocs(owner, member.jsdoc)
            defined_by = self._defined_by_comment(owner, current_type, member)
            logger.debug(
                "Resolved %s#%s from %d declaration(s)", inspected.name, name, len(candidates)
            )

            if value_type.is_function():
                report.functions.append(
                    self.get_function_data(
                        name, value_type, member.position, docs, defined_by, overrides
                    )
                )
            else:
                report.properties.append(
                    self._property_data(
                        name, value_type, member.position, docs, defined_by, overrides
                    )
                )
        return report

    def _defined_by_comment(
        self, context: NominalType, current_type: JsType, member: MemberRecord
    ) -> Optional[Comment]:
        if member.is_defined_on_interface():
            return None

        defined_on = member.defined_by
        if isinstance(defined_on, FunctionType) and defined_on.is_constructor():
            defined_on = defined_on.get_instance_type()
        if defined_on is current_type:
            return None

        defined_on = strip_template_type_information(defined_on)
        types = self.registry.get_types(defined_on)
        if not types and isinstance(defined_on, InstanceType) and defined_on.constructor:
            types = self.registry.get_types(defined_on.constructor)

        if types:
            link = self.link_factory.create_link(types[0], f"#{member.name}")
            return Comment.from_link(strip_hash(link.text), link.href)
        return self._renderer(context).render(defined_on)

    @staticmethod
    def _find_first_class_override(overrides: Sequence[MemberRecord]) -> Optional[MemberRecord]:
        return next((o for o in overrides if not o.is_defined_on_interface()), None)

    @staticmethod
    def _find_specifications(overrides: Sequence[MemberRecord]) -> list[MemberRecord]:
        return [o for o in overrides if o.is_defined_on_interface()]

    def _property_link(self, context: NominalType, member: MemberRecord) -> Comment:
        if member.owner_type is not None:
            link = self.link_factory.create_link(member.owner_type, f"#{member.name}")
            return Comment.from_link(strip_hash(link.text), link.href)

        defined_on = member.defined_by
        if isinstance(defined_on, FunctionType) and (
            defined_on.is_constructor() or defined_on.is_interface()
        ):
            defined_on = defined_on.get_instance_type()
        return self._renderer(context).render(strip_template_type_information(defined_on))

    # Descriptors

    def get_function_data(
        self,
        name: str,
        js_type: JsType,
        position: SourcePosition,
        docs: PropertyDocs,
        defined_by: Optional[Comment] = None,
        overrides: Sequence[MemberRecord] = (),
    ) -> Function:
        """Build the descriptor for a function member.

        Args:
            name: Display name.
            js_type: The function's resolved type.
            position: Declaration site.
            docs: Docs of the representative declaration.
            defined_by: Link to the inheriting type, if any.
            overrides: The remaining declarations of the member, nearest
                first.

        Returns:
            The function descriptor.

        Raises:
            TypeGraphError: If ``js_type`` is not callable.
        """
        if not isinstance(js_type, FunctionType):
            raise TypeGraphError(f"{name} is not a function type: {js_type!r}")

        is_constructor = js_type.is_constructor()
        is_interface = not is_constructor and js_type.is_interface()

        function = Function(
            base=self._base_property(name, js_type, position, docs, defined_by, overrides),
            is_constructor=is_constructor,
        )

        if not is_constructor and not is_interface:
            description = EMPTY_COMMENT
            return_docs = self._find_property_docs(docs, overrides, _has_return)
            if return_docs is not None:
                description = self._parse(
                    return_docs.jsdoc.return_clause.description, return_docs.context_type
                )
            return_type = self._return_type(docs, overrides, js_type)
            if not description.is_empty or not return_type.is_empty:
                function.returns = Detail(type=return_type, description=description)

        function.template_names = list(docs.jsdoc.template_type_names)
        function.thrown = self._throws_data(docs.context_type, docs.jsdoc)
        function.parameters = self._parameters(js_type, position, docs, overrides)
        return function

    def _parameters(
        self,
        function: FunctionType,
        position: SourcePosition,
        docs: PropertyDocs,
        overrides: Sequence[MemberRecord],
    ) -> list[Detail]:
        found = self._find_property_docs(docs, overrides, _has_named_parameters)
        if found is not None:
            renderer = self._renderer(found.context_type)
            return [
                Detail(
                    name=param.name,
                    type=renderer.render(param.type) if param.type else EMPTY_COMMENT,
                    description=self._parse(param.description, found.context_type),
                )
                for param in found.jsdoc.parameters
            ]

        names = position.param_names or ()
        renderer = self._renderer(docs.context_type)
        details = []
        for index, param_type in enumerate(function.parameters):
            detail = Detail(name=names[index] if index < len(names) else f"arg{index}")
            if not param_type.is_unknown():
                detail.type = renderer.render(param_type)
            details.append(detail)
        return details

    def _return_type(
        self, docs: PropertyDocs, overrides: Sequence[MemberRecord], function: FunctionType
    ) -> Comment:
        return_docs = self._find_property_docs(docs, overrides, _has_return_type)
        if return_docs is not None:
            comment = self._renderer(return_docs.context_type).render(
                return_docs.jsdoc.return_clause.type or "?"
            )
        else:
            return_type = function.return_type
            if return_type.is_unknown():
                for override in overrides:
                    if isinstance(override.type, FunctionType) and not (
                        override.type.return_type.is_unknown()
                    ):
                        return_type = override.type.return_type
                        break
            comment = self._renderer(docs.context_type).render(return_type)

        if is_vacuous(comment):
            return EMPTY_COMMENT
        return comment

    def _throws_data(self, context: NominalType, jsdoc: JsDoc) -> list[Detail]:
        renderer = self._renderer(context)
        return [
            Detail(
                type=renderer.render(clause.type) if clause.type else EMPTY_COMMENT,
                description=self._parse(clause.description, context),
            )
            for clause in jsdoc.throws_clauses
        ]

    def _property_data(
        self,
        name: str,
        js_type: JsType,
        position: SourcePosition,
        docs: PropertyDocs,
        defined_by: Optional[Comment] = None,
        overrides: Sequence[MemberRecord] = (),
    ) -> Property:
        renderer = self._renderer(docs.context_type)
        return Property(
            base=self._base_property(name, js_type, position, docs, defined_by, overrides),
            type=renderer.render(docs.jsdoc.type if docs.jsdoc.type else js_type),
        )

    def _base_property(
        self,
        name: str,
        js_type: JsType,
        position: SourcePosition,
        docs: PropertyDocs,
        defined_by: Optional[Comment],
        overrides: Sequence[MemberRecord],
    ) -> BaseProperty:
        context = docs.context_type
        factory = self.link_factory.with_type_context(context)
        base = BaseProperty(
            name=name,
            source=factory.create_source_link(position),
            description=self._find_block_comment(docs, overrides),
            defined_by=defined_by,
        )

        if self.registry.is_module(js_type):
            base.tags.is_module = True

        inspected = self.inspected_type
        if (
            name == "default"
            and context is inspected
            and inspected.is_module_exports()
            and inspected.module is not None
            and inspected.module.kind is ModuleKind.ES6
        ):
            base.tags.is_default = True

        override = self._find_first_class_override(overrides)
        if override is not None:
            base.overrides = self._property_link(context, override)
        base.specified_by = [
            self._property_link(context, spec) for spec in self._find_specifications(overrides)
        ]
        base.visibility = self._determine_visibility(docs, overrides)

        jsdoc = docs.jsdoc
        if jsdoc.is_deprecated:
            base.tags.is_deprecated = True
            base.deprecation = self._parse(jsdoc.deprecation_reason, context)

        for see_also in jsdoc.see_clauses:
            link = factory.create_link(see_also)
            if link.href:
                base.see_also.append(Comment.from_link(see_also, link.href))
                continue
            if URI_PATTERN.match(see_also):
                see_also = f"<{see_also.strip()}>"
            base.see_also.append(self._parse(see_also, context))

        if not js_type.is_function() and (jsdoc.is_const or jsdoc.is_define):
            base.tags.is_const = True
        return base

    def _determine_visibility(
        self, docs: PropertyDocs, overrides: Sequence[MemberRecord]
    ) -> Visibility:
        visibility = docs.jsdoc.visibility
        if visibility is Visibility.INHERITED:
            for override in overrides:
                visibility = override.jsdoc.visibility
                if visibility is not Visibility.INHERITED:
                    break
        if visibility is Visibility.INHERITED:
            visibility = self.registry.default_visibility(docs.context_type.source_file)
        return visibility

    def _find_block_comment(
        self, docs: PropertyDocs, overrides: Sequence[MemberRecord]
    ) -> Comment:
        found = self._find_property_docs(docs, overrides, _has_block_comment)
        if found is None:
            return EMPTY_COMMENT
        return self._parse(found.jsdoc.block_comment, found.context_type)

    def _find_property_docs(
        self,
        docs: PropertyDocs,
        overrides: Sequence[MemberRecord],
        predicate: JsDocPredicate,
    ) -> Optional[PropertyDocs]:
        """Find the first docs satisfying ``predicate``, nearest first.

        An inherited declaration's links resolve in the context of the
        type it is displayed under.
        """
        if predicate(docs.jsdoc):
            return docs
        for override in overrides:
            if predicate(override.jsdoc):
                return PropertyDocs(override.owner_type or docs.context_type, override.jsdoc)
        return None

    # Helpers

    def _parse(self, text: Optional[str], context: NominalType) -> Comment:
        return self.parser.parse_comment(text, self.link_factory.with_type_context(context))

    def _renderer(self, context: Optional[NominalType]) -> TypeExpressionRenderer:
        return TypeExpressionRenderer(self.link_factory.with_type_context(context))
