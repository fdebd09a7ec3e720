"""Registry of nominal types, modules and symbol aliases.

Also evaluates declared type expressions (``{!Array<string>}``) into
resolved type descriptors against the registered types.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Union

from dossier.analysis.types import (
    UNKNOWN,
    FunctionType,
    JsType,
    Module,
    NamedType,
    NominalType,
    RecordType,
    TemplatizedType,
    UnionType,
)
from dossier.parsers.jsdoc import Visibility

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"\s*(\.\.\.|[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*\.?|[!?|<>(){},:=*\[\]])")

_MAX_ALIAS_HOPS = 16


class TypeExpressionError(ValueError):
    """A declared type expression could not be parsed."""


class TypeRegistry:
    """Holds every nominal type known to the documentation run.

    Nominal types are kept in registration order; for any resolved type
    descriptor the first nominal type registered for it is its canonical
    alias.
    """

    def __init__(
        self,
        default_visibility: Visibility = Visibility.PUBLIC,
        visibility_overrides: Optional[dict[str, Visibility]] = None,
    ) -> None:
        """Initialize an empty registry.

        Args:
            default_visibility: Visibility assumed for symbols that never
                declare one anywhere in their hierarchy.
            visibility_overrides: Per-source-file default visibility.
        """
        self._types: dict[str, NominalType] = {}
        self._types_by_js: dict[JsType, list[NominalType]] = {}
        self._modules: dict[str, Module] = {}
        self._aliases: dict[tuple[str, str], str] = {}
        self._default_visibility = default_visibility
        self._file_visibility: dict[str, Visibility] = dict(visibility_overrides or {})

    # Registration

    def register(self, nominal: NominalType) -> NominalType:
        """Register a nominal type.

        Args:
            nominal: The type to register.

        Returns:
            The registered type.

        Raises:
            ValueError: If a different type is already registered under
                the same name.
        """
        existing = self._types.get(nominal.name)
        if existing is not None and existing is not nominal:
            raise ValueError(f"Duplicate type name: {nominal.name}")
        self._types[nominal.name] = nominal
        self._types_by_js.setdefault(nominal.type, []).append(nominal)
        logger.debug("Registered type %s", nominal.name)
        return nominal

    def register_module(self, module: Module) -> Module:
        self._modules[module.id] = module
        return module

    def register_alias(self, scope: str, alias: str, target: str) -> None:
        """Record that ``alias`` refers to ``target`` within ``scope``.

        Args:
            scope: Module id the alias is visible in; empty for global.
            alias: The local name.
            target: The name it stands for.
        """
        self._aliases[(scope, alias)] = target

    def set_file_visibility(self, source_file: str, visibility: Visibility) -> None:
        self._file_visibility.setdefault(source_file, visibility)

    # Lookup

    @property
    def types(self) -> list[NominalType]:
        """All registered types sorted by name."""
        return sorted(self._types.values(), key=lambda t: t.name)

    @property
    def modules(self) -> list[Module]:
        return list(self._modules.values())

    def is_type(self, name: str) -> bool:
        return name in self._types

    def get_type(self, name: str) -> Optional[NominalType]:
        return self._types.get(name)

    def get_types(self, js_type: JsType) -> list[NominalType]:
        """Return the nominal types registered for a type descriptor."""
        return list(self._types_by_js.get(js_type, ()))

    def get_module(self, module_id: str) -> Optional[Module]:
        return self._modules.get(module_id)

    def is_module(self, target: Union[str, JsType]) -> bool:
        """Whether a name or type descriptor is a module's exports object."""
        if isinstance(target, str):
            nominal = self._types.get(target)
            return nominal is not None and nominal.is_module_exports()
        return any(t.is_module_exports() for t in self._types_by_js.get(target, ()))

    def resolve_alias(self, context: Optional[NominalType], name: str) -> Optional[str]:
        """Resolve a possibly aliased symbol name as seen from ``context``.

        Aliases in the context's module scope take precedence over global
        ones. Only the leading path segment is aliased, so ``abc.Foo``
        resolves when ``abc`` is an alias for a namespace.

        Args:
            context: Type whose scope the name appears in, or None.
            name: The symbol name.

        Returns:
            The resolved name, or None when no alias applies.
        """
        scopes = [""]
        if context is not None and context.module is not None:
            scopes.insert(0, context.module.id)

        resolved = name
        for _ in range(_MAX_ALIAS_HOPS):
            target = self._lookup_alias(scopes, resolved)
            if target is None or target == resolved:
                break
            resolved = target
        else:
            logger.warning("Alias chain for %s exceeds %d hops", name, _MAX_ALIAS_HOPS)
            return None

        return resolved if resolved != name else None

    def _lookup_alias(self, scopes: list[str], name: str) -> Optional[str]:
        head, _, tail = name.partition(".")
        for scope in scopes:
            target = self._aliases.get((scope, name))
            if target is not None:
                return target
            if tail:
                target = self._aliases.get((scope, head))
                if target is not None:
                    return f"{target}.{tail}"
        return None

    def default_visibility(self, source_file: str) -> Visibility:
        """Default visibility for symbols declared in ``source_file``."""
        return self._file_visibility.get(source_file, self._default_visibility)

    # Type expressions

    def evaluate(self, expression: str, context: Optional[NominalType] = None) -> JsType:
        """Evaluate a declared type expression.

        Malformed expressions degrade to a NamedType holding the raw text.

        Args:
            expression: Expression text without the surrounding braces.
            context: Type whose scope names are resolved in.

        Returns:
            The resolved type descriptor.
        """
        try:
            return _ExpressionParser(self, expression, context).parse()
        except TypeExpressionError as e:
            logger.debug("Cannot evaluate type expression %r: %s", expression, e)
            return NamedType(expression.strip())

    def resolve_name(self, name: str, context: Optional[NominalType] = None) -> JsType:
        """Resolve a type name to the type its values have."""
        nominal = self._types.get(name)
        if nominal is None:
            alias = self.resolve_alias(context, name)
            if alias is not None:
                nominal = self._types.get(alias)
        if nominal is None and context is not None and context.module is not None:
            nominal = self._types.get(f"{context.module.id}.{name}")
        if nominal is None:
            return NamedType(name)
        if nominal.type.is_constructor() or nominal.type.is_interface():
            assert isinstance(nominal.type, FunctionType)
            return nominal.type.get_instance_type()
        return nominal.type


class _ExpressionParser:
    """Recursive-descent parser for Closure-style type expressions."""

    def __init__(
        self, registry: TypeRegistry, text: str, context: Optional[NominalType]
    ) -> None:
        self._registry = registry
        self._context = context
        self._tokens = self._tokenize(text)
        self._index = 0

    @staticmethod
    def _tokenize(text: str) -> list[str]:
        tokens = []
        pos = 0
        text = text.rstrip()
        while pos < len(text):
            match = _TOKEN.match(text, pos)
            if not match:
                raise TypeExpressionError(f"unexpected character at {pos}")
            tokens.append(match.group(1))
            pos = match.end()
        return tokens

    def _peek(self) -> Optional[str]:
        return self._tokens[self._index] if self._index < len(self._tokens) else None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            raise TypeExpressionError("unexpected end of expression")
        self._index += 1
        return token

    def _expect(self, token: str) -> None:
        actual = self._next()
        if actual != token:
            raise TypeExpressionError(f"expected {token!r}, found {actual!r}")

    def parse(self) -> JsType:
        if not self._tokens:
            return UNKNOWN
        result = self._union()
        if self._peek() is not None:
            raise TypeExpressionError(f"trailing token {self._peek()!r}")
        return result

    def _union(self) -> JsType:
        alternates = [self._prefixed()]
        while self._peek() == "|":
            self._next()
            alternates.append(self._prefixed())
        if len(alternates) == 1:
            return alternates[0]
        return UnionType(tuple(alternates))

    def _prefixed(self) -> JsType:
        token = self._peek()
        if token in ("!", "..."):
            self._next()
            result = self._atom()
        elif token == "?":
            self._next()
            if self._peek() in (None, "|", ">", ",", ")", "}", "="):
                return UNKNOWN
            result = self._atom()
        else:
            result = self._atom()
        while self._peek() in ("=", "?", "!"):
            self._next()
        return result

    def _atom(self) -> JsType:
        token = self._next()
        if token == "*":
            return UNKNOWN
        if token == "(":
            inner = self._union()
            self._expect(")")
            return inner
        if token == "{":
            return self._record()
        if token == "function":
            return self._function()
        if not re.match(r"[A-Za-z_$]", token):
            raise TypeExpressionError(f"unexpected token {token!r}")

        name = token.rstrip(".")
        base = self._registry.resolve_name(name, self._context)
        if self._peek() == "<":
            self._next()
            args = [self._union()]
            while self._peek() == ",":
                self._next()
                args.append(self._union())
            self._expect(">")
            return TemplatizedType(base, tuple(args))
        return base

    def _record(self) -> JsType:
        fields = []
        while self._peek() != "}":
            key = self._next()
            value: JsType = UNKNOWN
            if self._peek() == ":":
                self._next()
                value = self._union()
            fields.append((key, value))
            if self._peek() == ",":
                self._next()
        self._expect("}")
        return RecordType(tuple(fields))

    def _function(self) -> JsType:
        self._expect("(")
        params: list[JsType] = []
        while self._peek() != ")":
            token = self._peek()
            if token in ("this", "new"):
                self._next()
                self._expect(":")
                self._union()
            else:
                params.append(self._union())
            if self._peek() == ",":
                self._next()
        self._expect(")")
        return_type: JsType = UNKNOWN
        if self._peek() == ":":
            self._next()
            return_type = self._union()
        return FunctionType(parameters=tuple(params), return_type=return_type)
