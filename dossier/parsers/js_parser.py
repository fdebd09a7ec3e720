"""JavaScript parser using tree-sitter.

Extracts the documentable declarations of a source file (classes,
functions, variables, dotted-name assignments, imports and exports)
together with their raw JSDoc comments.
"""

import logging
import re
from pathlib import Path
from typing import Optional

import tree_sitter
import tree_sitter_javascript as tsjs

from dossier.parsers.structure import (
    AssignmentInfo,
    ClassInfo,
    ExportInfo,
    FieldInfo,
    FunctionInfo,
    ImportInfo,
    ModuleInfo,
    ParameterInfo,
    VariableInfo,
)

logger = logging.getLogger(__name__)

_JS_LANGUAGE = tree_sitter.Language(tsjs.language())

_FUNC_TYPES = {
    "function_declaration",
    "generator_function_declaration",
}
_FUNC_EXPR_TYPES = {
    "function",
    "function_expression",
    "generator_function",
    "arrow_function",
}
_CLASS_EXPR_TYPES = {"class"}
_DOTTED_NAME = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)+$")


class JSParser:
    """Parses JavaScript source files using tree-sitter."""

    def parse_file(self, file_path: str) -> ModuleInfo:
        """Parse a JavaScript file and extract its structure.

        Args:
            file_path: Path to the file to parse.

        Returns:
            A ModuleInfo with everything extracted.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        source = path.read_text(encoding="utf-8")
        return self.parse_source(source, file_path)

    def parse_source(self, source: str, file_path: str = "<string>") -> ModuleInfo:
        """Parse JavaScript source text and extract its structure.

        Args:
            source: JavaScript source code.
            file_path: File path recorded on the result.

        Returns:
            A ModuleInfo with everything extracted.
        """
        parser = tree_sitter.Parser(_JS_LANGUAGE)
        source_bytes = source.encode("utf-8")
        tree = parser.parse(source_bytes)
        root = tree.root_node

        module = ModuleInfo(file_path=file_path, line_count=len(source.splitlines()))

        for child in root.children:
            if child.type == "comment" and module.fileoverview is None:
                text = self._node_text(child, source_bytes)
                if text.startswith("/**") and "@fileoverview" in text:
                    module.fileoverview = text
                continue
            self._process_node(child, module, source_bytes)

        logger.debug(
            "Parsed %s: %d classes, %d functions, %d exports",
            file_path,
            len(module.classes),
            len(module.functions),
            len(module.exports),
        )
        return module

    def _process_node(
        self,
        node: tree_sitter.Node,
        module: ModuleInfo,
        source_bytes: bytes,
        doc_anchor: Optional[tree_sitter.Node] = None,
    ) -> None:
        """Process a top-level statement and add results to the module.

        Args:
            node: The statement node.
            module: The ModuleInfo to populate.
            source_bytes: Source as bytes.
            doc_anchor: Node whose preceding comment documents ``node``;
                the node itself when None.
        """
        anchor = doc_anchor or node
        node_type = node.type

        if node_type in _FUNC_TYPES:
            func = self._extract_function(node, source_bytes, anchor)
            if func:
                module.functions.append(func)

        elif node_type == "class_declaration":
            cls = self._extract_class(node, source_bytes, anchor)
            if cls:
                module.classes.append(cls)

        elif node_type in ("lexical_declaration", "variable_declaration"):
            kind = node.children[0].type if node.children else "var"
            for decl in self._iter_children_of_type(node, "variable_declarator"):
                var = self._extract_variable(decl, kind, source_bytes, anchor)
                if var:
                    module.variables.append(var)

        elif node_type == "expression_statement":
            assignment = self._extract_assignment(node, source_bytes, anchor)
            if assignment:
                module.assignments.append(assignment)

        elif node_type == "import_statement":
            module.is_module = True
            imp = self._extract_import(node, source_bytes)
            if imp:
                module.imports.append(imp)

        elif node_type == "export_statement":
            module.is_module = True
            self._process_export(node, module, source_bytes)

    def _process_export(
        self, node: tree_sitter.Node, module: ModuleInfo, source_bytes: bytes
    ) -> None:
        """Record the bindings an export statement exports.

        Declarations inside the statement are extracted as if they were
        top-level, documented by the comment preceding the ``export``.

        Args:
            node: An export_statement node.
            module: The ModuleInfo to populate.
            source_bytes: Source as bytes.
        """
        line = node.start_point.row + 1
        is_default = any(c.type == "default" for c in node.children)
        source_node = node.child_by_field_name("source")
        source = self._string_value(source_node, source_bytes) if source_node else None

        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            before = self._declaration_counts(module)
            self._process_node(declaration, module, source_bytes, doc_anchor=node)
            for name in self._declared_since(module, before):
                module.exports.append(
                    ExportInfo(
                        name="default" if is_default else name,
                        local=name,
                        declaration=True,
                        line_number=line,
                    )
                )
            return

        value = node.child_by_field_name("value")
        if value is not None:
            local = "default"
            declared = False
            if value.type == "identifier":
                local = self._node_text(value, source_bytes)
            elif value.type in _FUNC_EXPR_TYPES:
                func = self._extract_function(value, source_bytes, node, name="default")
                if func:
                    module.functions.append(func)
                    declared = True
            elif value.type in _CLASS_EXPR_TYPES:
                cls = self._extract_class(value, source_bytes, node, name="default")
                if cls:
                    module.classes.append(cls)
                    declared = True
            module.exports.append(
                ExportInfo(name="default", local=local, declaration=declared, line_number=line)
            )
            return

        for clause in self._iter_children_of_type(node, "export_clause"):
            for spec in self._iter_children_of_type(clause, "export_specifier"):
                name_node = spec.child_by_field_name("name")
                alias_node = spec.child_by_field_name("alias")
                if not name_node:
                    continue
                local = self._node_text(name_node, source_bytes)
                exported = self._node_text(alias_node, source_bytes) if alias_node else local
                module.exports.append(
                    ExportInfo(name=exported, local=local, source=source, line_number=line)
                )

    def _declaration_counts(self, module: ModuleInfo) -> tuple[int, int, int]:
        return len(module.classes), len(module.functions), len(module.variables)

    def _declared_since(self, module: ModuleInfo, counts: tuple[int, int, int]) -> list[str]:
        names = [c.name for c in module.classes[counts[0] :]]
        names.extend(f.name for f in module.functions[counts[1] :])
        names.extend(v.name for v in module.variables[counts[2] :])
        return names

    def _extract_function(
        self,
        node: tree_sitter.Node,
        source_bytes: bytes,
        doc_anchor: tree_sitter.Node,
        name: Optional[str] = None,
    ) -> Optional[FunctionInfo]:
        """Extract a function declaration or expression.

        Args:
            node: A function-like tree-sitter node.
            source_bytes: Source as bytes.
            doc_anchor: Node whose preceding comment documents the function.
            name: Name to use when the node has none.

        Returns:
            A FunctionInfo, or None for an anonymous function with no
            name supplied.
        """
        name_node = node.child_by_field_name("name")
        if name_node:
            name = self._node_text(name_node, source_bytes)
        if not name:
            return None

        return FunctionInfo(
            name=name,
            parameters=self._extract_parameters(node, source_bytes),
            jsdoc=self._extract_jsdoc(doc_anchor, source_bytes),
            is_async=any(c.type == "async" for c in node.children),
            line_number=doc_anchor.start_point.row + 1,
            end_line_number=node.end_point.row + 1,
        )

    def _extract_class(
        self,
        node: tree_sitter.Node,
        source_bytes: bytes,
        doc_anchor: tree_sitter.Node,
        name: Optional[str] = None,
    ) -> Optional[ClassInfo]:
        """Extract a class declaration or expression into ClassInfo.

        Args:
            node: A class_declaration or class node.
            source_bytes: Source as bytes.
            doc_anchor: Node whose preceding comment documents the class.
            name: Name to use when the node has none.

        Returns:
            A ClassInfo, or None for an anonymous class with no name
            supplied.
        """
        name_node = node.child_by_field_name("name")
        if name_node:
            name = self._node_text(name_node, source_bytes)
        if not name:
            return None

        cls = ClassInfo(
            name=name,
            jsdoc=self._extract_jsdoc(doc_anchor, source_bytes),
            line_number=doc_anchor.start_point.row + 1,
            end_line_number=node.end_point.row + 1,
        )

        for child in node.children:
            if child.type == "class_heritage":
                base = self._node_text(child, source_bytes).strip()
                if base.startswith("extends"):
                    base = base[len("extends") :].strip()
                cls.base_class = base or None

        body_node = node.child_by_field_name("body")
        if body_node:
            for child in body_node.children:
                if child.type == "method_definition":
                    method = self._extract_method(child, source_bytes)
                    if method is None:
                        continue
                    if method.name == "constructor" and not method.is_static:
                        cls.constructor = method
                        cls.fields.extend(self._extract_this_assignments(child, source_bytes))
                    else:
                        cls.methods.append(method)
                elif child.type == "field_definition":
                    field_info = self._extract_field(child, source_bytes)
                    if field_info:
                        cls.fields.append(field_info)
        return cls

    def _extract_method(
        self, node: tree_sitter.Node, source_bytes: bytes
    ) -> Optional[FunctionInfo]:
        """Extract a class method definition.

        Args:
            node: A method_definition tree-sitter node.
            source_bytes: Source as bytes.

        Returns:
            A FunctionInfo for the method, or None.
        """
        name_node = node.child_by_field_name("name")
        if not name_node or name_node.type == "computed_property_name":
            return None

        method = FunctionInfo(
            name=self._node_text(name_node, source_bytes),
            parameters=self._extract_parameters(node, source_bytes),
            jsdoc=self._extract_jsdoc(node, source_bytes),
            line_number=node.start_point.row + 1,
            end_line_number=node.end_point.row + 1,
        )
        for child in node.children:
            if child.type == "static":
                method.is_static = True
            elif child.type == "get":
                method.is_getter = True
            elif child.type == "set":
                method.is_setter = True
            elif child.type == "async":
                method.is_async = True
        return method

    def _extract_field(self, node: tree_sitter.Node, source_bytes: bytes) -> Optional[FieldInfo]:
        name_node = node.child_by_field_name("property")
        if not name_node or name_node.type == "computed_property_name":
            return None
        return FieldInfo(
            name=self._node_text(name_node, source_bytes),
            jsdoc=self._extract_jsdoc(node, source_bytes),
            is_static=any(c.type == "static" for c in node.children),
            line_number=node.start_point.row + 1,
        )

    def _extract_this_assignments(
        self, constructor: tree_sitter.Node, source_bytes: bytes
    ) -> list[FieldInfo]:
        """Collect ``this.name = ...`` statements directly in a constructor body."""
        fields: list[FieldInfo] = []
        body = constructor.child_by_field_name("body")
        if body is None:
            return fields

        seen = set()
        for statement in self._iter_children_of_type(body, "expression_statement"):
            expr = statement.named_children[0] if statement.named_children else None
            if expr is None or expr.type != "assignment_expression":
                continue
            left = expr.child_by_field_name("left")
            if left is None or left.type != "member_expression":
                continue
            obj = left.child_by_field_name("object")
            prop = left.child_by_field_name("property")
            if obj is None or obj.type != "this" or prop is None:
                continue
            name = self._node_text(prop, source_bytes)
            if name in seen:
                continue
            seen.add(name)
            fields.append(
                FieldInfo(
                    name=name,
                    jsdoc=self._extract_jsdoc(statement, source_bytes),
                    line_number=statement.start_point.row + 1,
                )
            )
        return fields

    def _extract_variable(
        self,
        node: tree_sitter.Node,
        kind: str,
        source_bytes: bytes,
        doc_anchor: tree_sitter.Node,
    ) -> Optional[VariableInfo]:
        """Extract one variable declarator.

        Args:
            node: A variable_declarator node.
            kind: ``const``, ``let`` or ``var``.
            source_bytes: Source as bytes.
            doc_anchor: Node whose preceding comment documents the binding.

        Returns:
            A VariableInfo, or None for destructuring declarators.
        """
        name_node = node.child_by_field_name("name")
        if not name_node or name_node.type != "identifier":
            return None

        name = self._node_text(name_node, source_bytes)
        value_node = node.child_by_field_name("value")
        var = VariableInfo(
            name=name,
            kind=kind,
            value_type=value_node.type if value_node else None,
            jsdoc=self._extract_jsdoc(doc_anchor, source_bytes),
            line_number=doc_anchor.start_point.row + 1,
        )
        if value_node is not None and value_node.type in _FUNC_EXPR_TYPES:
            var.function = self._extract_function(value_node, source_bytes, doc_anchor, name=name)
        elif value_node is not None and value_node.type in _CLASS_EXPR_TYPES:
            var.class_info = self._extract_class(value_node, source_bytes, doc_anchor, name=name)
        return var

    def _extract_assignment(
        self, node: tree_sitter.Node, source_bytes: bytes, doc_anchor: tree_sitter.Node
    ) -> Optional[AssignmentInfo]:
        """Extract a ``a.b.c = value`` statement.

        Args:
            node: An expression_statement node.
            source_bytes: Source as bytes.
            doc_anchor: Node whose preceding comment documents the target.

        Returns:
            An AssignmentInfo, or None if the statement is something else.
        """
        expr = node.named_children[0] if node.named_children else None
        if expr is None:
            return None

        if expr.type == "member_expression":
            # Bare declaration: /** @type {number} */ Foo.prototype.bar;
            target = self._node_text(expr, source_bytes)
            value = None
        elif expr.type == "assignment_expression":
            left = expr.child_by_field_name("left")
            if left is None or left.type != "member_expression":
                return None
            target = self._node_text(left, source_bytes)
            value = expr.child_by_field_name("right")
        else:
            return None

        if not _DOTTED_NAME.match(target):
            return None

        assignment = AssignmentInfo(
            target=target,
            value_type=value.type if value is not None else None,
            jsdoc=self._extract_jsdoc(doc_anchor, source_bytes),
            line_number=doc_anchor.start_point.row + 1,
        )
        if value is not None and value.type in _FUNC_EXPR_TYPES:
            assignment.function = self._extract_function(
                value, source_bytes, doc_anchor, name=target.rsplit(".", 1)[-1]
            )
        return assignment

    def _extract_parameters(
        self, node: tree_sitter.Node, source_bytes: bytes
    ) -> list[ParameterInfo]:
        """Extract function parameters from a function-like node.

        Args:
            node: A function or method tree-sitter node.
            source_bytes: Source as bytes.

        Returns:
            List of ParameterInfo objects.
        """
        params: list[ParameterInfo] = []
        params_node = node.child_by_field_name("parameters")
        if not params_node:
            # Single unparenthesized arrow function parameter.
            single = node.child_by_field_name("parameter")
            if single is not None:
                params.append(ParameterInfo(name=self._node_text(single, source_bytes)))
            return params

        for child in params_node.named_children:
            if child.type == "identifier":
                params.append(ParameterInfo(name=self._node_text(child, source_bytes)))
            elif child.type == "assignment_pattern":
                left = child.child_by_field_name("left")
                right = child.child_by_field_name("right")
                if left is not None:
                    params.append(
                        ParameterInfo(
                            name=self._node_text(left, source_bytes),
                            default_value=self._node_text(right, source_bytes) if right else None,
                        )
                    )
            elif child.type == "rest_pattern":
                name = self._node_text(child, source_bytes).lstrip(".")
                params.append(ParameterInfo(name=name, is_rest=True))
            elif child.type in ("object_pattern", "array_pattern"):
                params.append(ParameterInfo(name=self._node_text(child, source_bytes)))
        return params

    def _extract_import(
        self, node: tree_sitter.Node, source_bytes: bytes
    ) -> Optional[ImportInfo]:
        """Extract an import statement.

        Args:
            node: An import_statement tree-sitter node.
            source_bytes: Source as bytes.

        Returns:
            An ImportInfo, or None.
        """
        source_node = node.child_by_field_name("source")
        if not source_node:
            return None

        imp = ImportInfo(
            module=self._string_value(source_node, source_bytes),
            line_number=node.start_point.row + 1,
        )
        for clause in self._iter_children_of_type(node, "import_clause"):
            for sub in clause.named_children:
                if sub.type == "identifier":
                    imp.names["default"] = self._node_text(sub, source_bytes)
                elif sub.type == "namespace_import":
                    ids = self._iter_children_of_type(sub, "identifier")
                    if ids:
                        imp.names["*"] = self._node_text(ids[0], source_bytes)
                elif sub.type == "named_imports":
                    for spec in self._iter_children_of_type(sub, "import_specifier"):
                        name_node = spec.child_by_field_name("name")
                        alias_node = spec.child_by_field_name("alias")
                        if name_node:
                            name = self._node_text(name_node, source_bytes)
                            alias = self._node_text(alias_node, source_bytes) if alias_node else name
                            imp.names[name] = alias
        return imp

    def _extract_jsdoc(self, node: tree_sitter.Node, source_bytes: bytes) -> Optional[str]:
        """Return the raw JSDoc comment immediately preceding a node.

        File overview comments never document the declaration after them.

        Args:
            node: The tree-sitter node to find JSDoc for.
            source_bytes: Source as bytes.

        Returns:
            The raw ``/** ... */`` text, or None if not found.
        """
        prev = node.prev_named_sibling
        if prev and prev.type == "comment":
            text = self._node_text(prev, source_bytes)
            if text.startswith("/**") and "@fileoverview" not in text:
                return text
        return None

    def _string_value(self, node: tree_sitter.Node, source_bytes: bytes) -> str:
        return self._node_text(node, source_bytes).strip("'\"`")

    def _node_text(self, node: tree_sitter.Node, source_bytes: bytes) -> str:
        return source_bytes[node.start_byte : node.end_byte].decode("utf-8")

    def _iter_children_of_type(
        self, node: tree_sitter.Node, type_name: str
    ) -> list[tree_sitter.Node]:
        """Get all direct children of a node with a specific type.

        Args:
            node: Parent tree-sitter node.
            type_name: Node type to filter by.

        Returns:
            List of matching child nodes.
        """
        return [c for c in node.children if c.type == type_name]
