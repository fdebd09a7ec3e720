"""Builds the type graph from parsed source files.

Files are added first and only declare their types; ``build()`` then
resolves inheritance and populates every type's property slots, so
declarations may refer to types from files added later.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dossier.analysis.registry import TypeRegistry
from dossier.analysis.types import (
    UNKNOWN,
    FunctionKind,
    FunctionType,
    JsType,
    Module,
    ModuleKind,
    NamespaceType,
    NominalType,
    PropertySlot,
    SourcePosition,
)
from dossier.parsers.jsdoc import EMPTY_JSDOC, JsDoc, Visibility, parse_jsdoc
from dossier.parsers.structure import (
    AssignmentInfo,
    ClassInfo,
    ExportInfo,
    FunctionInfo,
    ModuleInfo,
)

logger = logging.getLogger(__name__)


@dataclass
class _Declaration:
    """A class or constructor function awaiting member resolution."""

    ctor: FunctionType
    jsdoc: JsDoc
    path: str
    scope: str
    context: Optional[NominalType]
    class_info: Optional[ClassInfo] = None
    function_info: Optional[FunctionInfo] = None


@dataclass
class _Assignment:
    info: AssignmentInfo
    path: str
    scope: str
    context: Optional[NominalType]


@dataclass
class _Export:
    info: ExportInfo
    module: Module
    exports: NominalType
    source: ModuleInfo


class GraphBuilder:
    """Turns parsed scripts and ES modules into a populated TypeRegistry.

    Scripts declare their classes and namespaces in the global scope.
    A module declares a namespace named after its file stem holding its
    exports, plus a ``stem.Name`` type for every exported class.
    """

    def __init__(self, registry: TypeRegistry) -> None:
        self.registry = registry
        self._declarations: list[_Declaration] = []
        self._assignments: list[_Assignment] = []
        self._exports: list[_Export] = []
        self._locals: dict[tuple[str, str], FunctionType] = {}

    # Declaration pass

    def add_script(self, info: ModuleInfo) -> None:
        """Declare the global types of a script file.

        Args:
            info: The parsed script.
        """
        path = info.file_path
        self._apply_file_visibility(info)

        for cls in info.classes:
            self._declare_class(cls.name, cls, parse_jsdoc(cls.jsdoc), path, "", None)

        for var in info.variables:
            jsdoc = parse_jsdoc(var.jsdoc)
            if var.class_info is not None:
                self._declare_class(var.name, var.class_info, jsdoc, path, "", None)
            elif var.function is not None and (jsdoc.is_constructor or jsdoc.is_interface):
                self._declare_function_class(var.name, var.function, jsdoc, path, "", None)
            elif var.value_type == "object":
                self._declare_namespace(var.name, jsdoc, path, var.line_number)

        for func in info.functions:
            jsdoc = parse_jsdoc(func.jsdoc)
            if jsdoc.is_constructor or jsdoc.is_interface:
                self._declare_function_class(func.name, func, jsdoc, path, "", None)
            else:
                logger.debug("Skipping global function %s in %s", func.name, path)

        for assignment in info.assignments:
            self._declare_assignment(assignment, path, "", None)

    def add_module(self, info: ModuleInfo) -> Module:
        """Declare an ES module and the types it exports.

        Args:
            info: The parsed module file.

        Returns:
            The registered Module.
        """
        path = info.file_path
        module_id = Path(path).stem
        self._apply_file_visibility(info)

        module = self.registry.register_module(
            Module(
                id=module_id,
                path=path,
                kind=ModuleKind.ES6,
                jsdoc=parse_jsdoc(info.fileoverview),
            )
        )
        exports = self._register(
            NominalType(
                name=module_id,
                type=NamespaceType(name=module_id),
                module=module,
                source_file=path,
                position=SourcePosition(path, 1),
            )
        )

        for imp in info.imports:
            source_id = Path(imp.module).stem
            for imported, local in imp.names.items():
                target = source_id if imported == "*" else f"{source_id}.{imported}"
                self.registry.register_alias(module_id, local, target)

        for cls in info.classes:
            if cls.jsdoc:
                module.internal_var_docs[cls.name] = parse_jsdoc(cls.jsdoc)
        for func in info.functions:
            if func.jsdoc:
                module.internal_var_docs[func.name] = parse_jsdoc(func.jsdoc)
        for var in info.variables:
            if var.jsdoc:
                module.internal_var_docs[var.name] = parse_jsdoc(var.jsdoc)

        classes = {c.name: c for c in info.classes}
        classes.update((v.name, v.class_info) for v in info.variables if v.class_info)

        for export in info.exports:
            local = export.local
            if export.source is not None:
                source_id = Path(export.source).stem
                local = f"{source_id}.{export.local}"
                self.registry.register_alias(module_id, export.name, local)
            module.exported_names[export.name] = local

            cls = classes.get(export.local) if export.source is None else None
            if cls is not None:
                qualified = f"{module_id}.{export.name}"
                ctor = self._locals.get((module_id, cls.name))
                if ctor is None:
                    ctor = self._declare_class(
                        qualified, cls, parse_jsdoc(cls.jsdoc), path, module_id, exports
                    )
                    self.registry.register_alias(module_id, cls.name, qualified)
                else:
                    self._register(
                        NominalType(
                            name=qualified,
                            type=ctor,
                            jsdoc=parse_jsdoc(cls.jsdoc),
                            module=module,
                            source_file=path,
                            position=SourcePosition(path, cls.line_number),
                        )
                    )
                self._locals[(module_id, cls.name)] = ctor
            self._exports.append(_Export(export, module, exports, info))

        for name, cls in classes.items():
            if (module_id, name) not in self._locals:
                self._locals[(module_id, name)] = self._declare_class(
                    name, cls, parse_jsdoc(cls.jsdoc), path, module_id, exports, register=False
                )

        for assignment in info.assignments:
            self._declare_assignment(assignment, path, module_id, exports)

        logger.debug("Declared module %s with %d exports", module_id, len(info.exports))
        return module

    def _apply_file_visibility(self, info: ModuleInfo) -> None:
        overview = parse_jsdoc(info.fileoverview)
        if overview.visibility is not Visibility.INHERITED:
            self.registry.set_file_visibility(info.file_path, overview.visibility)

    def _register(self, nominal: NominalType) -> NominalType:
        try:
            return self.registry.register(nominal)
        except ValueError as e:
            logger.warning("Skipping %s from %s: %s", nominal.name, nominal.source_file, e)
            return nominal

    def _declare_class(
        self,
        name: str,
        cls: ClassInfo,
        jsdoc: JsDoc,
        path: str,
        scope: str,
        context: Optional[NominalType],
        register: bool = True,
    ) -> FunctionType:
        kind = FunctionKind.INTERFACE if jsdoc.is_interface else FunctionKind.CONSTRUCTOR
        ctor = FunctionType(name=name, kind=kind)
        param_names = None
        if cls.constructor is not None:
            param_names = cls.constructor.param_names
            ctor_docs = parse_jsdoc(cls.constructor.jsdoc)
            if not jsdoc.parameters and ctor_docs.parameters:
                jsdoc = dataclasses.replace(jsdoc, parameters=ctor_docs.parameters)

        if register:
            self._register(
                NominalType(
                    name=name,
                    type=ctor,
                    jsdoc=jsdoc,
                    module=context.module if context else None,
                    source_file=path,
                    position=SourcePosition(path, cls.line_number, param_names),
                )
            )
        self._declarations.append(_Declaration(ctor, jsdoc, path, scope, context, cls))
        return ctor

    def _declare_function_class(
        self,
        name: str,
        func: FunctionInfo,
        jsdoc: JsDoc,
        path: str,
        scope: str,
        context: Optional[NominalType],
    ) -> FunctionType:
        kind = FunctionKind.INTERFACE if jsdoc.is_interface else FunctionKind.CONSTRUCTOR
        ctor = FunctionType(name=name, kind=kind)
        self._register(
            NominalType(
                name=name,
                type=ctor,
                jsdoc=jsdoc,
                module=context.module if context else None,
                source_file=path,
                position=SourcePosition(path, func.line_number, func.param_names),
            )
        )
        self._declarations.append(
            _Declaration(ctor, jsdoc, path, scope, context, function_info=func)
        )
        return ctor

    def _declare_namespace(self, name: str, jsdoc: JsDoc, path: str, line: int) -> None:
        self._register(
            NominalType(
                name=name,
                type=NamespaceType(name=name),
                jsdoc=jsdoc,
                source_file=path,
                position=SourcePosition(path, line),
            )
        )

    def _declare_assignment(
        self,
        assignment: AssignmentInfo,
        path: str,
        scope: str,
        context: Optional[NominalType],
    ) -> None:
        jsdoc = parse_jsdoc(assignment.jsdoc)
        target = assignment.target
        if ".prototype." not in target:
            if assignment.function is not None and (jsdoc.is_constructor or jsdoc.is_interface):
                self._declare_function_class(
                    target, assignment.function, jsdoc, path, scope, context
                )
            elif assignment.value_type == "object" and not scope:
                self._declare_namespace(target, jsdoc, path, assignment.line_number)
        self._assignments.append(_Assignment(assignment, path, scope, context))

    # Resolution pass

    def build(self) -> TypeRegistry:
        """Resolve inheritance and populate every declared type's slots.

        Returns:
            The populated registry.
        """
        for declaration in self._declarations:
            self._resolve_heritage(declaration)
        for declaration in self._declarations:
            if declaration.class_info is not None:
                self._populate_class(declaration)
            elif declaration.function_info is not None:
                self._assign_params(
                    declaration.ctor,
                    declaration.function_info,
                    declaration.jsdoc,
                    declaration.context,
                )
        for assignment in self._assignments:
            self._populate_assignment(assignment)
        for export in self._exports:
            self._populate_export(export)

        logger.info(
            "Built type graph: %d types, %d modules",
            len(self.registry.types),
            len(self.registry.modules),
        )
        return self.registry

    def _resolve_function(
        self, name: str, scope: str, context: Optional[NominalType]
    ) -> Optional[FunctionType]:
        local = self._locals.get((scope, name))
        if local is not None:
            return local

        nominal = self.registry.get_type(name)
        if nominal is None:
            alias = self.registry.resolve_alias(context, name)
            if alias is not None:
                nominal = self.registry.get_type(alias)
        if nominal is not None and isinstance(nominal.type, FunctionType):
            return nominal.type
        logger.debug("Cannot resolve %s in scope %r", name, scope)
        return None

    def _resolve_heritage(self, declaration: _Declaration) -> None:
        ctor, jsdoc = declaration.ctor, declaration.jsdoc
        scope, context = declaration.scope, declaration.context

        if ctor.is_interface():
            targets = list(jsdoc.extended_types)
            if declaration.class_info is not None and declaration.class_info.base_class:
                targets.insert(0, declaration.class_info.base_class)
            for target in targets:
                iface = self._resolve_function(_strip_type_markers(target), scope, context)
                if iface is not None and iface.is_interface() and iface is not ctor:
                    ctor.extended_interfaces.append(iface)
            return

        base = declaration.class_info.base_class if declaration.class_info else None
        if base is None and jsdoc.extended_types:
            base = jsdoc.extended_types[0]
        if base:
            super_class = self._resolve_function(_strip_type_markers(base), scope, context)
            if super_class is not None and super_class is not ctor:
                ctor.super_class = super_class
        for target in jsdoc.implemented_types:
            iface = self._resolve_function(_strip_type_markers(target), scope, context)
            if iface is not None and iface.is_interface():
                ctor.implemented_interfaces.append(iface)

    def _populate_class(self, declaration: _Declaration) -> None:
        ctor, cls, context = declaration.ctor, declaration.class_info, declaration.context
        assert cls is not None
        path = declaration.path

        if cls.constructor is not None:
            self._assign_params(ctor, cls.constructor, declaration.jsdoc, context)

        prototype = ctor.prototype
        instance = ctor.get_instance_type()
        assert prototype is not None

        for method in cls.methods:
            jsdoc = parse_jsdoc(method.jsdoc)
            owner = ctor if method.is_static else prototype
            if owner.own_slot(method.name) is not None:
                continue
            if method.is_getter or method.is_setter:
                declared = jsdoc.type or jsdoc.return_clause.type
                member_type = self._evaluate(declared, context) if declared else UNKNOWN
                position = SourcePosition(path, method.line_number)
            else:
                member_type = self._function_type(method, jsdoc, context)
                position = SourcePosition(path, method.line_number, method.param_names)
            owner.define_slot(PropertySlot(method.name, member_type, jsdoc, position))

        for field_info in cls.fields:
            jsdoc = parse_jsdoc(field_info.jsdoc)
            owner = ctor if field_info.is_static else instance
            if owner.own_slot(field_info.name) is not None:
                continue
            member_type = self._evaluate(jsdoc.type, context) if jsdoc.type else UNKNOWN
            owner.define_slot(
                PropertySlot(
                    field_info.name,
                    member_type,
                    jsdoc,
                    SourcePosition(path, field_info.line_number),
                )
            )

    def _populate_assignment(self, pending: _Assignment) -> None:
        info, scope, context = pending.info, pending.scope, pending.context
        jsdoc = parse_jsdoc(info.jsdoc)
        target = info.target

        if ".prototype." in target:
            owner_name, _, member = target.partition(".prototype.")
            ctor = self._resolve_function(owner_name, scope, context)
            if ctor is None or ctor.prototype is None or "." in member:
                logger.debug("Ignoring assignment to %s", target)
                return
            owner = ctor.prototype
        else:
            owner_name, _, member = target.rpartition(".")
            owner_nominal = self.registry.get_type(owner_name)
            local = self._locals.get((scope, owner_name))
            owner = local if local is not None else (
                owner_nominal.type.to_object() if owner_nominal is not None else None
            )
            if owner is None:
                logger.debug("Ignoring assignment to %s", target)
                return

        declared = self.registry.get_type(target)
        if declared is not None:
            member_type = declared.type
        elif info.function is not None:
            member_type = self._function_type(info.function, jsdoc, context)
        elif jsdoc.type:
            member_type = self._evaluate(jsdoc.type, context)
        else:
            member_type = UNKNOWN

        param_names = info.function.param_names if info.function else None
        if owner.own_slot(member) is None:
            owner.define_slot(
                PropertySlot(
                    member,
                    member_type,
                    jsdoc,
                    SourcePosition(pending.path, info.line_number, param_names),
                )
            )

    def _populate_export(self, pending: _Export) -> None:
        export, module, info = pending.info, pending.module, pending.source
        namespace = pending.exports.type.to_object()
        assert namespace is not None
        if namespace.own_slot(export.name) is not None:
            return

        path = module.path
        jsdoc = EMPTY_JSDOC
        member_type: JsType = UNKNOWN
        param_names = None
        line = export.line_number

        local_class = self._locals.get((module.id, export.local)) if not export.source else None
        func = next((f for f in info.functions if f.name == export.local), None)
        var = next((v for v in info.variables if v.name == export.local), None)

        if local_class is not None:
            member_type = local_class
        elif func is not None and not export.source:
            member_type = self._function_type(func, parse_jsdoc(func.jsdoc), pending.exports)
            param_names = func.param_names
        elif var is not None and not export.source:
            var_docs = parse_jsdoc(var.jsdoc)
            if var.function is not None:
                member_type = self._function_type(var.function, var_docs, pending.exports)
                param_names = var.function.param_names
            elif var_docs.type:
                member_type = self._evaluate(var_docs.type, pending.exports)
        else:
            target = module.exported_names.get(export.name, export.local)
            resolved = self.registry.resolve_alias(pending.exports, target) or target
            nominal = self.registry.get_type(resolved)
            if nominal is not None:
                member_type = nominal.type
                qualified = f"{module.id}.{export.name}"
                if (nominal.is_constructor() or nominal.is_interface()) and not (
                    self.registry.is_type(qualified)
                ):
                    self._register(
                        NominalType(
                            name=qualified,
                            type=nominal.type,
                            module=module,
                            source_file=path,
                            position=SourcePosition(path, line),
                        )
                    )

        if export.declaration:
            jsdoc = module.internal_var_docs.get(export.local, EMPTY_JSDOC)

        namespace.define_slot(
            PropertySlot(export.name, member_type, jsdoc, SourcePosition(path, line, param_names))
        )

    # Helpers

    def _assign_params(
        self,
        ctor: FunctionType,
        func: FunctionInfo,
        jsdoc: JsDoc,
        context: Optional[NominalType],
    ) -> None:
        ctor.parameters = self._function_type(func, jsdoc, context).parameters

    def _function_type(
        self, func: FunctionInfo, jsdoc: JsDoc, context: Optional[NominalType]
    ) -> FunctionType:
        declared = {p.name: p.type for p in jsdoc.parameters if p.name and p.type}
        parameters = tuple(
            self._evaluate(declared[p.name], context) if p.name in declared else UNKNOWN
            for p in func.parameters
        )
        return_type: JsType = UNKNOWN
        if jsdoc.return_clause.type:
            return_type = self._evaluate(jsdoc.return_clause.type, context)
        return FunctionType(name=func.name, parameters=parameters, return_type=return_type)

    def _evaluate(self, expression: str, context: Optional[NominalType]) -> JsType:
        return self.registry.evaluate(expression, context)


def _strip_type_markers(expression: str) -> str:
    return expression.strip().lstrip("!?").split("<", 1)[0].strip()
