"""Tests for resolving type descriptions and member descriptors."""

import logging

import pytest

from dossier.analysis.members import PropertyDocs
from dossier.analysis.registry import TypeRegistry
from dossier.analysis.types import (
    UNKNOWN,
    FunctionType,
    Module,
    NamedType,
    NominalType,
    SourcePosition,
    TypeGraphError,
)
from dossier.generators.link_factory import MDN_PREFIX
from dossier.generators.type_inspector import URI_PATTERN, strip_hash
from dossier.output.documents import EMPTY_COMMENT, Comment, Token
from dossier.parsers.jsdoc import EMPTY_JSDOC, Visibility, parse_jsdoc
from tests.conftest import GraphHelper

STRING_HREF = MDN_PREFIX + "Global_Objects/String"


def _doc(*lines: str) -> str:
    return "/**\n" + "\n".join(f" * {line}" for line in lines) + "\n */"


def _html(comment: Comment) -> str:
    return comment.plain_text()


class TestHelpers:
    """Tests for module-level helpers."""

    def test_strip_hash(self) -> None:
        assert strip_hash("Foo#bar") == "Foo"
        assert strip_hash("Foo") == "Foo"

    def test_uri_pattern(self) -> None:
        assert URI_PATTERN.match("https://example.com/a?b=1#c")
        assert URI_PATTERN.match(" http://example.com ")
        assert not URI_PATTERN.match("Foo#bar")
        assert not URI_PATTERN.match("ftp://example.com")


class TestTypeDescription:
    """Tests for get_type_description."""

    def test_own_block_comment(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo", _doc("A foo. With details."))
        inspector = graph.inspector(foo)
        assert _html(inspector.get_type_description()) == "<p>A foo. With details.</p>"
        assert _html(inspector.get_type_summary()) == "<p>A foo.</p>"

    def test_no_docs(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        assert graph.inspector(foo).get_type_description() is EMPTY_COMMENT

    def test_module_docs(self, graph: GraphHelper, registry: TypeRegistry) -> None:
        module = registry.register_module(
            Module(id="mod", jsdoc=parse_jsdoc(_doc("@fileoverview Module docs.")))
        )
        exports = graph.add_namespace("mod", module=module)
        description = graph.inspector(exports).get_type_description()
        assert _html(description) == "<p>Module docs.</p>"

    def test_export_internal_docs(self, graph: GraphHelper, registry: TypeRegistry) -> None:
        module = registry.register_module(
            Module(
                id="mod",
                exported_names={"Bar": "InternalBar"},
                internal_var_docs={"InternalBar": parse_jsdoc(_doc("Internal docs."))},
            )
        )
        graph.add_namespace("mod", module=module)
        bar = graph.add_class("mod.Bar", module=module)
        assert _html(graph.inspector(bar).get_type_description()) == "<p>Internal docs.</p>"

    def test_export_follows_resolved_type(
        self, graph: GraphHelper, registry: TypeRegistry
    ) -> None:
        graph.add_class("other.Thing", _doc("The thing."))
        module = registry.register_module(Module(id="mod", exported_names={"Bar": "Local"}))
        graph.add_namespace("mod", module=module)
        registry.register_alias("mod", "Local", "other.Thing")
        bar = graph.add_class("mod.Bar", module=module)
        assert _html(graph.inspector(bar).get_type_description()) == "<p>The thing.</p>"

    def test_canonical_alias_docs(self, graph: GraphHelper, registry: TypeRegistry) -> None:
        original = graph.add_class("Original", _doc("Original docs."))
        alias = registry.register(NominalType("Alias", original.type))
        assert _html(graph.inspector(alias).get_type_description()) == "<p>Original docs.</p>"

    def test_relative_link_in_context(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo", _doc("Calls {@link #run}."))
        description = graph.inspector(foo).get_type_description()
        assert 'href="Foo.html#run"' in _html(description)

    def test_describe_other_type(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        bar = graph.add_class("Bar", _doc("Bar docs."))
        description = graph.inspector(foo).get_type_description(bar)
        assert _html(description) == "<p>Bar docs.</p>"


class TestInspectType:
    """Tests for static member reports."""

    def test_class_statics_qualified(self, graph: GraphHelper) -> None:
        foo = graph.add_class("ns.Foo")
        graph.add_static(foo, "create", FunctionType(name="create"), _doc("Makes one."))
        graph.add_static(foo, "LIMIT", NamedType("number"), _doc("The limit.", "@const"))
        report = graph.inspector(foo).inspect_type()
        assert [f.base.name for f in report.functions] == ["Foo.create"]
        assert [p.base.name for p in report.properties] == ["Foo.LIMIT"]
        assert report.properties[0].base.tags.is_const

    def test_namespace_members_unqualified(self, graph: GraphHelper) -> None:
        ns = graph.add_namespace("ns")
        graph.add_static(ns, "helper", FunctionType(name="helper"))
        report = graph.inspector(ns).inspect_type()
        assert [f.base.name for f in report.functions] == ["helper"]

    def test_documented_types_excluded(self, graph: GraphHelper) -> None:
        ns = graph.add_namespace("ns")
        nested = graph.add_class("ns.Nested")
        graph.add_static(ns, "Nested", nested.type)
        assert graph.inspector(ns).inspect_type().is_empty

    def test_nested_module_included(self, graph: GraphHelper, registry: TypeRegistry) -> None:
        outer = graph.add_namespace("outer", module=registry.register_module(Module(id="outer")))
        inner = graph.add_namespace("inner", module=registry.register_module(Module(id="inner")))
        graph.add_static(outer, "inner", inner.type)
        report = graph.inspector(outer).inspect_type()
        assert [p.base.name for p in report.properties] == ["inner"]
        assert report.properties[0].base.tags.is_module

    def test_builtin_function_properties_skipped(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        for name in ("apply", "bind", "call", "prototype"):
            graph.add_static(foo, name, UNKNOWN)
        assert graph.inspector(foo).inspect_type().is_empty

    def test_private_skipped(self, graph: GraphHelper) -> None:
        ns = graph.add_namespace("ns")
        graph.add_static(ns, "secret", NamedType("string"), _doc("@private"))
        assert graph.inspector(ns).inspect_type().is_empty

    def test_compiler_constant(self, graph: GraphHelper) -> None:
        ns = graph.add_namespace("ns")
        graph.add_static(ns, "DEBUG", NamedType("boolean"), _doc("Debug mode.", "@define {boolean}"))
        report = graph.inspector(ns).inspect_type()
        assert [c.base.name for c in report.compiler_constants] == ["ns.DEBUG"]
        assert report.compiler_constants[0].base.tags.is_const

    def test_type_filter(self, graph: GraphHelper) -> None:
        ns = graph.add_namespace("ns")
        graph.add_static(ns, "hidden", NamedType("string"))
        graph.add_static(ns, "shown", NamedType("string"))
        report = graph.inspector(ns, lambda name: name == "ns.hidden").inspect_type()
        assert [p.base.name for p in report.properties] == ["shown"]

    def test_sorted_by_name(self, graph: GraphHelper) -> None:
        ns = graph.add_namespace("ns")
        for name in ("b", "c", "a"):
            graph.add_static(ns, name, NamedType("string"))
        report = graph.inspector(ns).inspect_type()
        assert [p.base.name for p in report.properties] == ["a", "b", "c"]

    def test_default_export_tag(self, graph: GraphHelper, registry: TypeRegistry) -> None:
        exports = graph.add_namespace("mod", module=registry.register_module(Module(id="mod")))
        graph.add_static(exports, "default", FunctionType(name="default"))
        report = graph.inspector(exports).inspect_type()
        assert report.functions[0].base.tags.is_default

    def test_static_docs_from_internal_binding(
        self, graph: GraphHelper, registry: TypeRegistry
    ) -> None:
        module = registry.register_module(
            Module(
                id="mod",
                exported_names={"run": "runImpl"},
                internal_var_docs={"runImpl": parse_jsdoc(_doc("Runs it."))},
            )
        )
        exports = graph.add_namespace("mod", module=module)
        graph.add_static(exports, "run", FunctionType(name="run"))
        report = graph.inspector(exports).inspect_type()
        assert _html(report.functions[0].base.description) == "<p>Runs it.</p>"

    def test_static_docs_from_static_property(
        self, graph: GraphHelper, registry: TypeRegistry
    ) -> None:
        util = graph.add_namespace("util")
        graph.add_static(util, "fmt", FunctionType(name="fmt"), _doc("Formats."))
        module = registry.register_module(Module(id="mod", exported_names={"fmt": "util.fmt"}))
        exports = graph.add_namespace("mod", module=module)
        graph.add_static(exports, "fmt", FunctionType(name="fmt"))
        report = graph.inspector(exports).inspect_type()
        assert _html(report.functions[0].base.description) == "<p>Formats.</p>"


class TestInspectInstanceType:
    """Tests for instance member resolution."""

    def test_docs_from_interface(self, graph: GraphHelper) -> None:
        iface = graph.add_interface("I")
        graph.add_method(iface, "m", _doc("Does the thing."))
        cls = graph.add_class("C", implements=[iface])
        graph.add_method(cls, "m")

        report = graph.inspector(cls).inspect_instance_type()
        fn = report.functions[0]
        assert fn.base.name == "m"
        assert _html(fn.base.description) == "<p>Does the thing.</p>"
        assert fn.base.specified_by == [Comment.from_link("I", "I.html#m")]
        assert fn.base.overrides is None
        assert fn.base.defined_by is None
        assert fn.returns is None
        assert fn.parameters == []

    def test_overrides_skips_interface_candidates(self, graph: GraphHelper) -> None:
        a = graph.add_class("A")
        graph.add_method(a, "m", _doc("From A."))
        iface = graph.add_interface("I")
        graph.add_method(iface, "m", _doc("From I."))
        b = graph.add_class("B", extends=a, implements=[iface])
        graph.add_method(b, "m")

        fn = graph.inspector(b).inspect_instance_type().functions[0]
        assert fn.base.overrides == Comment.from_link("A", "A.html#m")
        assert fn.base.specified_by == [Comment.from_link("I", "I.html#m")]
        assert fn.base.defined_by is None

    def test_same_member_from_several_interfaces(self, graph: GraphHelper) -> None:
        first = graph.add_interface("I1")
        graph.add_method(first, "m", _doc("From I1."))
        second = graph.add_interface("I2")
        graph.add_method(second, "m", _doc("From I2."))
        cls = graph.add_class("C", implements=[first, second])
        graph.add_method(cls, "m")

        fn = graph.inspector(cls).inspect_instance_type().functions[0]
        assert fn.base.specified_by == [
            Comment.from_link("I1", "I1.html#m"),
            Comment.from_link("I2", "I2.html#m"),
        ]
        assert _html(fn.base.description) == "<p>From I1.</p>"
        assert fn.base.overrides is None

    def test_visibility_inherited_through_chain(self, graph: GraphHelper) -> None:
        a = graph.add_class("A")
        graph.add_method(a, "m", _doc("Base docs.", "@protected"))
        b = graph.add_class("B", extends=a)
        graph.add_method(b, "m")
        c = graph.add_class("C", extends=b)
        graph.add_method(c, "m")

        fn = graph.inspector(c).inspect_instance_type().functions[0]
        assert fn.base.visibility is Visibility.PROTECTED
        assert _html(fn.base.description) == "<p>Base docs.</p>"
        assert fn.base.overrides == Comment.from_link("B", "B.html#m")

    def test_visibility_resolved_per_level(self, graph: GraphHelper) -> None:
        root = graph.add_class("Root")
        graph.add_method(root, "m", _doc("@public"))
        middle = graph.add_class("Middle", extends=root)
        graph.add_method(middle, "m")
        leaf = graph.add_class("Leaf", extends=middle)
        graph.add_method(leaf, "m", _doc("@protected"))

        leaf_fn = graph.inspector(leaf).inspect_instance_type().functions[0]
        middle_fn = graph.inspector(middle).inspect_instance_type().functions[0]
        assert leaf_fn.base.visibility is Visibility.PROTECTED
        assert middle_fn.base.visibility is Visibility.PUBLIC

    def test_own_visibility_wins(self, graph: GraphHelper) -> None:
        a = graph.add_class("A")
        graph.add_method(a, "m", _doc("@protected"))
        b = graph.add_class("B", extends=a)
        graph.add_method(b, "m", _doc("@public"))
        fn = graph.inspector(b).inspect_instance_type().functions[0]
        assert fn.base.visibility is Visibility.PUBLIC

    def test_default_visibility_from_source_file(self) -> None:
        registry = TypeRegistry(visibility_overrides={"internal.js": Visibility.PACKAGE})
        graph = GraphHelper(registry)
        foo = graph.add_class("Foo", source_file="internal.js")
        graph.add_method(foo, "m")
        fn = graph.inspector(foo).inspect_instance_type().functions[0]
        assert fn.base.visibility is Visibility.PACKAGE

    def test_inherited_member_defined_by(self, graph: GraphHelper) -> None:
        a = graph.add_class("A")
        graph.add_method(a, "m", _doc("From A."))
        b = graph.add_class("B", extends=a)
        fn = graph.inspector(b).inspect_instance_type().functions[0]
        assert fn.base.defined_by == Comment.from_link("A", "A.html#m")
        assert fn.base.overrides is None

    def test_private_member_skipped(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "secret", _doc("@private"))
        graph.add_method(foo, "shown")
        report = graph.inspector(foo).inspect_instance_type()
        assert [f.base.name for f in report.functions] == ["shown"]

    def test_property_type_from_annotation(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_field(foo, "count", _doc("The count.", "@type {number}"))
        prop = graph.inspector(foo).inspect_instance_type().properties[0]
        assert prop.base.name == "count"
        assert prop.type.plain_text() == "number"
        assert prop.type.tokens[0].href.endswith("Global_Objects/Number")

    def test_property_type_from_value(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_field(foo, "name", js_type=NamedType("string"))
        prop = graph.inspector(foo).inspect_instance_type().properties[0]
        assert prop.type.tokens == (Token(text="string", href=STRING_HREF),)

    def test_value_type_from_first_known_candidate(self, graph: GraphHelper) -> None:
        a = graph.add_class("A")
        graph.add_method(a, "m")
        b = graph.add_class("B", extends=a)
        graph.add_field(b, "m")
        report = graph.inspector(b).inspect_instance_type()
        assert [f.base.name for f in report.functions] == ["m"]

    def test_namespace_has_no_instance_members(self, graph: GraphHelper) -> None:
        ns = graph.add_namespace("ns")
        assert graph.inspector(ns).inspect_instance_type().is_empty

    def test_missing_prototype_raises(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        foo.type.prototype = None
        with pytest.raises(TypeGraphError):
            graph.inspector(foo).inspect_instance_type()


class TestFunctionData:
    """Tests for function descriptors."""

    def test_documented_params_and_return(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(
            foo,
            "greet",
            _doc(
                "Greets.",
                "@param {string} name Who to greet.",
                "@return {string} The greeting.",
                "@throws {Error} When rude.",
            ),
        )
        fn = graph.inspector(foo).inspect_instance_type().functions[0]
        assert len(fn.parameters) == 1
        param = fn.parameters[0]
        assert param.name == "name"
        assert param.type.tokens == (Token(text="string", href=STRING_HREF),)
        assert _html(param.description) == "<p>Who to greet.</p>"
        assert fn.returns.type.tokens == (Token(text="string", href=STRING_HREF),)
        assert _html(fn.returns.description) == "<p>The greeting.</p>"
        assert fn.thrown[0].type.plain_text() == "Error"
        assert _html(fn.thrown[0].description) == "<p>When rude.</p>"

    def test_params_inherited_from_override(self, graph: GraphHelper) -> None:
        a = graph.add_class("A")
        graph.add_method(a, "run", _doc("@param {number} speed How fast."))
        b = graph.add_class("B", extends=a)
        graph.add_method(b, "run", _doc("Runs faster."))
        fn = graph.inspector(b).inspect_instance_type().functions[0]
        assert [p.name for p in fn.parameters] == ["speed"]
        assert _html(fn.base.description) == "<p>Runs faster.</p>"

    def test_positional_params(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(
            foo, "run", parameters=(NamedType("string"), UNKNOWN), param_names=("a",)
        )
        fn = graph.inspector(foo).inspect_instance_type().functions[0]
        assert [p.name for p in fn.parameters] == ["a", "arg1"]
        assert fn.parameters[0].type.plain_text() == "string"
        assert fn.parameters[1].type is EMPTY_COMMENT

    def test_vacuous_return_omitted(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "run", _doc("@return {void}"))
        fn = graph.inspector(foo).inspect_instance_type().functions[0]
        assert fn.returns is None

    def test_return_description_without_type(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "run", _doc("@return The result."))
        fn = graph.inspector(foo).inspect_instance_type().functions[0]
        assert fn.returns.type is EMPTY_COMMENT
        assert _html(fn.returns.description) == "<p>The result.</p>"

    def test_return_type_from_function_type(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "count", return_type=NamedType("number"))
        fn = graph.inspector(foo).inspect_instance_type().functions[0]
        assert fn.returns.type.plain_text() == "number"

    def test_return_type_from_override_function(self, graph: GraphHelper) -> None:
        a = graph.add_class("A")
        graph.add_method(a, "count", return_type=NamedType("number"))
        b = graph.add_class("B", extends=a)
        graph.add_method(b, "count")
        fn = graph.inspector(b).inspect_instance_type().functions[0]
        assert fn.returns.type.plain_text() == "number"

    def test_constructor_has_no_return(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo", _doc("@return {string}"))
        inspector = graph.inspector(foo)
        fn = inspector.get_function_data(
            "Foo", foo.type, foo.position, PropertyDocs(foo, foo.jsdoc)
        )
        assert fn.is_constructor
        assert fn.returns is None

    def test_template_names(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "map", _doc("@template T"))
        fn = graph.inspector(foo).inspect_instance_type().functions[0]
        assert fn.template_names == ["T"]

    def test_non_function_raises(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        with pytest.raises(TypeGraphError):
            graph.inspector(foo).get_function_data(
                "x", NamedType("string"), SourcePosition(), PropertyDocs(foo, EMPTY_JSDOC)
            )


class TestBaseProperty:
    """Tests for shared descriptor details."""

    def test_deprecation(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "old", _doc("@deprecated Use {@code neu}."))
        base = graph.inspector(foo).inspect_instance_type().functions[0].base
        assert base.tags.is_deprecated
        assert _html(base.deprecation) == "<p>Use <code>neu</code>.</p>"

    def test_see_also_symbol(self, graph: GraphHelper) -> None:
        graph.add_class("Bar")
        foo = graph.add_class("Foo")
        graph.add_method(foo, "m", _doc("@see Bar"))
        base = graph.inspector(foo).inspect_instance_type().functions[0].base
        assert base.see_also == [Comment.from_link("Bar", "Bar.html")]

    def test_see_also_uri(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "m", _doc("@see https://example.com/docs"))
        base = graph.inspector(foo).inspect_instance_type().functions[0].base
        assert 'href="https://example.com/docs"' in _html(base.see_also[0])

    def test_see_also_text(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "m", _doc("@see the manual"))
        base = graph.inspector(foo).inspect_instance_type().functions[0].base
        assert _html(base.see_also[0]) == "<p>the manual</p>"

    def test_source_link(self, graph: GraphHelper) -> None:
        foo = graph.add_class("Foo")
        graph.add_method(foo, "m")
        base = graph.inspector(foo).inspect_instance_type().functions[0].base
        assert (base.source.path, base.source.line) == ("test.js", 10)


class TestDescriptionCycles:
    """Tests for the description lookup cycle guard."""

    def test_export_cycle_terminates(
        self, graph: GraphHelper, registry: TypeRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        module = registry.register_module(
            Module(id="mod", exported_names={"A": "mod.B", "B": "mod.A"})
        )
        graph.add_namespace("mod", module=module)
        a = graph.add_class("mod.A", module=module)
        graph.add_class("mod.B", module=module)
        with caplog.at_level(logging.WARNING):
            assert graph.inspector(a).get_type_description() is EMPTY_COMMENT
        assert "loops back" in caplog.text
