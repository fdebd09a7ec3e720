"""Rendering of resolved type descriptors as linked documentation text."""

from __future__ import annotations

import logging
from typing import Union

from dossier.analysis.types import (
    FunctionType,
    InstanceType,
    JsType,
    NamedType,
    NamespaceType,
    PrototypeType,
    RecordType,
    TemplatizedType,
    UnionType,
)
from dossier.generators.link_factory import LinkFactory
from dossier.output.documents import Comment, Token

logger = logging.getLogger(__name__)

_VACUOUS = frozenset({"", "?", "*", "undefined", "void"})


def is_vacuous(comment: Comment) -> bool:
    """Whether a rendered type says nothing about the value."""
    return comment.plain_text().strip() in _VACUOUS


class TypeExpressionRenderer:
    """Renders type descriptors into Comments of link and text tokens.

    Names of documented types become links; punctuation and names with
    no page become plain text. Adjacent text tokens are merged.
    """

    def __init__(self, link_factory: LinkFactory) -> None:
        self.link_factory = link_factory
        self.registry = link_factory.registry

    def render(self, type_or_expression: Union[JsType, str]) -> Comment:
        """Render a type descriptor or a declared type expression.

        Args:
            type_or_expression: A resolved type, or expression text such
                as ``"!Array<string>"`` evaluated in the factory's context.

        Returns:
            The rendered Comment.
        """
        js_type = type_or_expression
        if isinstance(js_type, str):
            js_type = self.registry.evaluate(js_type, self.link_factory.type_context)

        tokens: list[Token] = []
        self._append(js_type, tokens, seen=[])
        return Comment(tuple(_merge_text(tokens)))

    def _text(self, text: str, tokens: list[Token]) -> None:
        tokens.append(Token(text=text))

    def _link(self, name: str, tokens: list[Token]) -> None:
        link = self.link_factory.create_link(name)
        tokens.append(Token(text=name, href=link.href))

    def _nominal(self, js_type: JsType, fallback: str, tokens: list[Token]) -> None:
        types = self.registry.get_types(js_type)
        if types:
            link = self.link_factory.create_link(types[0])
            tokens.append(Token(text=link.text, href=link.href))
        else:
            self._link(fallback, tokens)

    def _append(self, js_type: JsType, tokens: list[Token], seen: list[JsType]) -> None:
        if any(js_type is s for s in seen):
            self._text("?", tokens)
            return
        seen = seen + [js_type]

        if js_type.is_unknown():
            self._text("?", tokens)
        elif isinstance(js_type, NamedType):
            self._link(js_type.name, tokens)
        elif isinstance(js_type, InstanceType):
            ctor = js_type.constructor
            if ctor is None:
                self._text("Object", tokens)
            else:
                self._nominal(ctor, ctor.name or "Object", tokens)
        elif isinstance(js_type, PrototypeType):
            owner = js_type.owner_function
            self._text(f"{owner.name if owner else 'Object'}.prototype", tokens)
        elif isinstance(js_type, FunctionType):
            self._function(js_type, tokens, seen)
        elif isinstance(js_type, NamespaceType):
            self._nominal(js_type, js_type.name or "Object", tokens)
        elif isinstance(js_type, UnionType):
            self._text("(", tokens)
            for index, alternate in enumerate(js_type.alternates):
                if index:
                    self._text("|", tokens)
                self._append(alternate, tokens, seen)
            self._text(")", tokens)
        elif isinstance(js_type, TemplatizedType):
            self._append(js_type.referenced, tokens, seen)
            self._text("<", tokens)
            for index, arg in enumerate(js_type.template_args):
                if index:
                    self._text(", ", tokens)
                self._append(arg, tokens, seen)
            self._text(">", tokens)
        elif isinstance(js_type, RecordType):
            self._text("{", tokens)
            for index, (key, value) in enumerate(js_type.fields):
                if index:
                    self._text(", ", tokens)
                self._text(f"{key}: ", tokens)
                self._append(value, tokens, seen)
            self._text("}", tokens)
        else:
            logger.debug("Rendering unsupported type %r as unknown", js_type)
            self._text("?", tokens)

    def _function(self, fn: FunctionType, tokens: list[Token], seen: list[JsType]) -> None:
        if fn.is_constructor() or fn.is_interface():
            self._text("function(new: ", tokens)
            self._append(fn.get_instance_type(), tokens, seen)
            self._text(")", tokens)
            return

        self._text("function(", tokens)
        for index, param in enumerate(fn.parameters):
            if index:
                self._text(", ", tokens)
            self._append(param, tokens, seen)
        self._text(")", tokens)
        if not fn.return_type.is_unknown():
            self._text(": ", tokens)
            self._append(fn.return_type, tokens, seen)


def _merge_text(tokens: list[Token]) -> list[Token]:
    merged: list[Token] = []
    for token in tokens:
        if merged and not token.href and not merged[-1].href:
            merged[-1] = Token(text=(merged[-1].text or "") + (token.text or ""))
        else:
            merged.append(token)
    return merged
