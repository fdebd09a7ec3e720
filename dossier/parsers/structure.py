"""Data models for parsed JavaScript source files.

The parser fills these records without interpreting doc comments; raw
``/** ... */`` text is kept as-is and parsed later when the type graph
is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ParameterInfo:
    """A function parameter.

    Attributes:
        name: Parameter name, or the pattern text for destructured params.
        default_value: Default value source text, if any.
        is_rest: Whether this is a ``...rest`` parameter.
    """

    name: str
    default_value: Optional[str] = None
    is_rest: bool = False


@dataclass
class FunctionInfo:
    """A function declaration, function expression or class method.

    Attributes:
        name: Function or method name.
        parameters: Parameters in declaration order.
        jsdoc: Raw doc comment preceding the declaration.
        is_static: Static class method.
        is_getter: Accessor declared with ``get``.
        is_setter: Accessor declared with ``set``.
        is_async: Declared ``async``.
        line_number: 1-based first line.
        end_line_number: 1-based last line.
    """

    name: str
    parameters: list[ParameterInfo] = field(default_factory=list)
    jsdoc: Optional[str] = None
    is_static: bool = False
    is_getter: bool = False
    is_setter: bool = False
    is_async: bool = False
    line_number: int = 0
    end_line_number: int = 0

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parameters)


@dataclass
class FieldInfo:
    """A class field or a ``this.name = ...`` assignment in a constructor."""

    name: str
    jsdoc: Optional[str] = None
    is_static: bool = False
    line_number: int = 0


@dataclass
class ClassInfo:
    """A class declaration.

    Attributes:
        name: Class name.
        base_class: Source text of the ``extends`` expression.
        methods: Methods other than the constructor.
        fields: Class fields and constructor-assigned instance fields.
        constructor: The ``constructor`` method, if declared.
        jsdoc: Raw doc comment preceding the class.
        line_number: 1-based first line.
        end_line_number: 1-based last line.
    """

    name: str
    base_class: Optional[str] = None
    methods: list[FunctionInfo] = field(default_factory=list)
    fields: list[FieldInfo] = field(default_factory=list)
    constructor: Optional[FunctionInfo] = None
    jsdoc: Optional[str] = None
    line_number: int = 0
    end_line_number: int = 0


@dataclass
class VariableInfo:
    """A top-level ``const``/``let``/``var`` binding.

    Attributes:
        name: Bound name.
        kind: Declaration keyword.
        value_type: Tree-sitter node type of the initializer, if any.
        function: The initializer when it is a function or arrow function.
        class_info: The initializer when it is a class expression.
        jsdoc: Raw doc comment preceding the declaration.
        line_number: 1-based line.
    """

    name: str
    kind: str = "const"
    value_type: Optional[str] = None
    function: Optional[FunctionInfo] = None
    class_info: Optional[ClassInfo] = None
    jsdoc: Optional[str] = None
    line_number: int = 0


@dataclass
class AssignmentInfo:
    """A top-level assignment to a dotted name, e.g. ``Foo.prototype.bar = ...``."""

    target: str
    value_type: Optional[str] = None
    function: Optional[FunctionInfo] = None
    jsdoc: Optional[str] = None
    line_number: int = 0


@dataclass
class ExportInfo:
    """One exported binding.

    Attributes:
        name: Name the binding is exported as (``default`` for default exports).
        local: Name of the binding inside the module.
        source: Module specifier for re-exports (``export {a} from './b.js'``).
        declaration: Whether the export statement declares the binding itself.
        line_number: 1-based line.
    """

    name: str
    local: str
    source: Optional[str] = None
    declaration: bool = False
    line_number: int = 0


@dataclass
class ImportInfo:
    """An import statement.

    Attributes:
        module: Module specifier.
        names: Imported name to local binding name.
        line_number: 1-based line.
    """

    module: str
    names: dict[str, str] = field(default_factory=dict)
    line_number: int = 0


@dataclass
class ModuleInfo:
    """Everything extracted from one source file.

    Attributes:
        file_path: Path of the parsed file.
        fileoverview: Raw ``@fileoverview`` comment, if present.
        functions: Top-level function declarations.
        classes: Top-level class declarations.
        variables: Top-level variable bindings.
        assignments: Top-level dotted-name assignments.
        exports: Exported bindings.
        imports: Import statements.
        line_count: Number of lines in the file.
        is_module: Whether the file uses ES module syntax.
    """

    file_path: str
    fileoverview: Optional[str] = None
    functions: list[FunctionInfo] = field(default_factory=list)
    classes: list[ClassInfo] = field(default_factory=list)
    variables: list[VariableInfo] = field(default_factory=list)
    assignments: list[AssignmentInfo] = field(default_factory=list)
    exports: list[ExportInfo] = field(default_factory=list)
    imports: list[ImportInfo] = field(default_factory=list)
    line_count: int = 0
    is_module: bool = False

    def find_class(self, name: str) -> Optional[ClassInfo]:
        return next((c for c in self.classes if c.name == name), None)
