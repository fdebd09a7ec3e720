"""Tests for the JavaScript parser."""

import textwrap
from pathlib import Path

import pytest

from dossier.parsers.js_parser import JSParser


@pytest.fixture
def parser() -> JSParser:
    """Create a JSParser instance for testing."""
    return JSParser()


class TestParseSource:
    """Tests for parsing JS source code strings."""

    def test_empty_source(self, parser: JSParser) -> None:
        result = parser.parse_source("")
        assert result.functions == []
        assert result.classes == []
        assert not result.is_module

    def test_line_count(self, parser: JSParser) -> None:
        source = "const a = 1;\nconst b = 2;\nconst c = 3;\n"
        result = parser.parse_source(source)
        assert result.line_count == 3

    def test_file_path_recorded(self, parser: JSParser) -> None:
        assert parser.parse_source("", "lib/a.js").file_path == "lib/a.js"

    def test_fileoverview(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            /** @fileoverview Shape helpers. */

            /** A circle. */
            class Circle {}
        """)
        result = parser.parse_source(source)
        assert "Shape helpers." in result.fileoverview
        assert result.classes[0].jsdoc == "/** A circle. */"

    def test_fileoverview_does_not_document_next_declaration(self, parser: JSParser) -> None:
        source = "/** @fileoverview Helpers. */\nclass Circle {}\n"
        result = parser.parse_source(source)
        assert result.classes[0].jsdoc is None


class TestFunctionExtraction:
    """Tests for extracting function declarations."""

    def test_simple_function(self, parser: JSParser) -> None:
        result = parser.parse_source("function hello() { return 42; }\n")
        assert len(result.functions) == 1
        assert result.functions[0].name == "hello"

    def test_function_with_params(self, parser: JSParser) -> None:
        result = parser.parse_source("function add(x, y) { return x + y; }\n")
        func = result.functions[0]
        assert func.param_names == ("x", "y")

    def test_default_and_rest_params(self, parser: JSParser) -> None:
        result = parser.parse_source("function f(a, b = 2, ...rest) {}\n")
        params = result.functions[0].parameters
        assert [p.name for p in params] == ["a", "b", "rest"]
        assert params[1].default_value == "2"
        assert params[2].is_rest

    def test_jsdoc_attached(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            /**
             * Adds numbers.
             * @param {number} x
             */
            function add(x) {}
        """)
        result = parser.parse_source(source)
        assert "Adds numbers." in result.functions[0].jsdoc

    def test_plain_comment_ignored(self, parser: JSParser) -> None:
        result = parser.parse_source("// not docs\nfunction hello() {}\n")
        assert result.functions[0].jsdoc is None
        assert result.functions[0].line_number == 2

    def test_async_function(self, parser: JSParser) -> None:
        result = parser.parse_source("async function load(url) {}\n")
        assert result.functions[0].is_async


class TestClassExtraction:
    """Tests for extracting class declarations."""

    def test_class_with_extends(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            class Dog extends Animal {
                bark() { return "Woof!"; }
            }
        """)
        cls = parser.parse_source(source).classes[0]
        assert cls.name == "Dog"
        assert cls.base_class == "Animal"
        assert [m.name for m in cls.methods] == ["bark"]

    def test_constructor_fields(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            class Animal {
                constructor(name) {
                    /** @type {string} */
                    this.name = name;
                    this.name = "again";
                    this.legs = 4;
                }
            }
        """)
        cls = parser.parse_source(source).classes[0]
        assert cls.constructor is not None
        assert cls.constructor.param_names == ("name",)
        assert [f.name for f in cls.fields] == ["name", "legs"]
        assert cls.fields[0].jsdoc == "/** @type {string} */"
        assert cls.methods == []

    def test_method_modifiers(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            class Shape {
                static create() {}
                get area() { return 0; }
                async load() {}
            }
        """)
        methods = {m.name: m for m in parser.parse_source(source).classes[0].methods}
        assert methods["create"].is_static
        assert methods["area"].is_getter
        assert methods["load"].is_async
        assert not methods["area"].is_static

    def test_class_fields(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            class Counter {
                /** The count. */
                count = 0;
                static instances = 0;
            }
        """)
        fields = parser.parse_source(source).classes[0].fields
        assert [(f.name, f.is_static) for f in fields] == [
            ("count", False),
            ("instances", True),
        ]
        assert fields[0].jsdoc == "/** The count. */"

    def test_method_jsdoc(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            class Greeter {
                /** Says hello. */
                greet(name) {}
            }
        """)
        method = parser.parse_source(source).classes[0].methods[0]
        assert method.jsdoc == "/** Says hello. */"

    def test_find_class(self, parser: JSParser) -> None:
        result = parser.parse_source("class A {}\nclass B {}\n")
        assert result.find_class("B").name == "B"
        assert result.find_class("C") is None


class TestVariablesAndAssignments:
    """Tests for variable bindings and dotted-name assignments."""

    def test_arrow_function_variable(self, parser: JSParser) -> None:
        result = parser.parse_source("const greet = (name) => name;\n")
        var = result.variables[0]
        assert var.name == "greet"
        assert var.kind == "const"
        assert var.function.param_names == ("name",)

    def test_object_variable(self, parser: JSParser) -> None:
        result = parser.parse_source("/** Namespace. */\nvar ns = {};\n")
        var = result.variables[0]
        assert var.kind == "var"
        assert var.value_type == "object"
        assert var.jsdoc == "/** Namespace. */"

    def test_class_expression_variable(self, parser: JSParser) -> None:
        result = parser.parse_source("const Foo = class { run() {} };\n")
        assert result.variables[0].class_info.name == "Foo"

    def test_prototype_method_assignment(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            /** Runs. */
            Foo.prototype.run = function(speed) {};
        """)
        assignment = parser.parse_source(source).assignments[0]
        assert assignment.target == "Foo.prototype.run"
        assert assignment.function.name == "run"
        assert assignment.function.param_names == ("speed",)
        assert assignment.jsdoc == "/** Runs. */"

    def test_bare_declaration(self, parser: JSParser) -> None:
        source = "/** @type {number} */\nFoo.prototype.count;\n"
        assignment = parser.parse_source(source).assignments[0]
        assert assignment.target == "Foo.prototype.count"
        assert assignment.value_type is None

    def test_non_dotted_assignment_ignored(self, parser: JSParser) -> None:
        result = parser.parse_source("x = 1;\nfoo();\n")
        assert result.assignments == []


class TestModules:
    """Tests for import and export statements."""

    def test_export_declarations(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            /** A circle. */
            export class Circle {}
            export function area(r) {}
            export const PI = 3.14;
        """)
        result = parser.parse_source(source)
        assert result.is_module
        assert [(e.name, e.local, e.declaration) for e in result.exports] == [
            ("Circle", "Circle", True),
            ("area", "area", True),
            ("PI", "PI", True),
        ]
        assert result.classes[0].jsdoc == "/** A circle. */"

    def test_export_clause_with_alias(self, parser: JSParser) -> None:
        source = "function internal() {}\nexport {internal as run};\n"
        export = parser.parse_source(source).exports[0]
        assert (export.name, export.local, export.source) == ("run", "internal", None)

    def test_reexport(self, parser: JSParser) -> None:
        export = parser.parse_source("export {Circle} from './shapes.js';\n").exports[0]
        assert export.name == "Circle"
        assert export.source == "./shapes.js"

    def test_default_export_identifier(self, parser: JSParser) -> None:
        source = "class Foo {}\nexport default Foo;\n"
        export = parser.parse_source(source).exports[0]
        assert (export.name, export.local, export.declaration) == ("default", "Foo", False)

    def test_imports(self, parser: JSParser) -> None:
        source = textwrap.dedent("""\
            import Shape, {Circle as Round, area} from './shapes.js';
            import * as util from "./util.js";
        """)
        imports = parser.parse_source(source).imports
        assert imports[0].module == "./shapes.js"
        assert imports[0].names == {"default": "Shape", "Circle": "Round", "area": "area"}
        assert imports[1].names == {"*": "util"}


class TestParseFile:
    """Tests for parsing JS files from disk."""

    def test_parse_file(self, parser: JSParser, tmp_path: Path) -> None:
        js_file = tmp_path / "app.js"
        js_file.write_text("function main() {}\n")
        result = parser.parse_file(str(js_file))
        assert result.file_path == str(js_file)
        assert result.functions[0].name == "main"

    def test_missing_file(self, parser: JSParser) -> None:
        with pytest.raises(FileNotFoundError):
            parser.parse_file("/nonexistent/file.js")
