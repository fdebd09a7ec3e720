"""JSDoc comment parsing.

Turns a raw ``/** ... */`` comment into a structured JsDoc record: the
free-form block description plus the block tags the resolver consumes
(parameters, return and throws clauses, see-also references, visibility
and the boolean annotations).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

_TAG_LINE = re.compile(r"^@(\w+)(?:\s+|$)(.*)$", re.DOTALL)
_OPTIONAL_PARAM = re.compile(r"^\[([^\]=]+)(?:=[^\]]*)?\]$")


class Visibility(str, Enum):
    """Declared visibility of a documented symbol."""

    PUBLIC = "PUBLIC"
    PROTECTED = "PROTECTED"
    PRIVATE = "PRIVATE"
    PACKAGE = "PACKAGE"
    INHERITED = "INHERITED"

    @classmethod
    def parse(cls, value: str) -> Visibility:
        """Look up a visibility by name, case-insensitively.

        Args:
            value: Visibility name such as ``"public"`` or ``"PROTECTED"``.

        Returns:
            The matching Visibility member.

        Raises:
            ValueError: If the name is not a known visibility.
        """
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown visibility: {value!r}") from None


@dataclass(frozen=True)
class Parameter:
    """A ``@param`` entry. Any of the three parts may be missing."""

    name: str = ""
    type: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class TypedDescription:
    """A ``@return`` or ``@throws`` clause."""

    type: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class JsDoc:
    """Structured view of a single doc comment.

    A symbol without a doc comment is represented by ``EMPTY_JSDOC``
    rather than ``None`` so resolution code never has to null-check.

    Attributes:
        original_comment: The raw comment text; empty when there was none.
        block_comment: Free-form description preceding the block tags.
        parameters: ``@param`` entries in declaration order.
        return_clause: The ``@return`` clause (may be empty).
        has_return: Whether an ``@return`` tag was present at all.
        throws_clauses: Explicit ``@throws`` clauses.
        see_clauses: Raw ``@see`` references.
        deprecation_reason: ``@deprecated`` text, None when not deprecated.
        visibility: Declared visibility, INHERITED when none was declared.
        type: Declared ``@type`` / ``@const`` / ``@define`` type expression.
        template_type_names: ``@template`` names.
        extended_types: ``@extends`` targets.
        implemented_types: ``@implements`` targets.
    """

    original_comment: str = ""
    block_comment: str = ""
    parameters: tuple[Parameter, ...] = ()
    return_clause: TypedDescription = field(default_factory=TypedDescription)
    has_return: bool = False
    throws_clauses: tuple[TypedDescription, ...] = ()
    see_clauses: tuple[str, ...] = ()
    deprecation_reason: Optional[str] = None
    visibility: Visibility = Visibility.INHERITED
    is_const: bool = False
    is_define: bool = False
    type: Optional[str] = None
    template_type_names: tuple[str, ...] = ()
    is_interface: bool = False
    is_constructor: bool = False
    is_override: bool = False
    is_fileoverview: bool = False
    extended_types: tuple[str, ...] = ()
    implemented_types: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.original_comment

    @property
    def is_deprecated(self) -> bool:
        return self.deprecation_reason is not None

    @property
    def has_return_type(self) -> bool:
        return self.return_clause.type is not None


EMPTY_JSDOC = JsDoc()


def strip_comment_markers(raw: str) -> str:
    """Remove the comment delimiters and leading asterisks.

    Indentation after the ``* `` gutter is preserved so Markdown code
    blocks and nested list items survive.

    Args:
        raw: Raw comment text including ``/**`` and ``*/``.

    Returns:
        The comment body.
    """
    text = raw.strip()
    if text.startswith("/**"):
        text = text[3:]
    elif text.startswith("/*"):
        text = text[2:]
    if text.endswith("*/"):
        text = text[:-2]

    lines = []
    for line in text.split("\n"):
        stripped = line.lstrip()
        if stripped.startswith("*"):
            stripped = stripped[1:]
            if stripped.startswith(" "):
                stripped = stripped[1:]
            line = stripped
        lines.append(line.rstrip())

    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def split_type(text: str) -> tuple[Optional[str], str]:
    """Split a leading ``{type}`` expression off a tag's text.

    Braces inside the type expression (record types) are balanced.

    Args:
        text: Tag text, e.g. ``"{!Array<string>} names The names."``.

    Returns:
        Tuple of (type expression or None, remaining text).
    """
    text = text.lstrip()
    if not text.startswith("{"):
        return None, text

    depth = 0
    for index, char in enumerate(text):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[1:index].strip(), text[index + 1 :].strip()
    logger.debug("Unterminated type expression in %r", text)
    return None, text


def _split_word(text: str) -> tuple[str, str]:
    parts = text.split(None, 1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1].strip()


def _parse_param(text: str) -> Parameter:
    type_expr, rest = split_type(text)
    name, description = _split_word(rest)
    optional = _OPTIONAL_PARAM.match(name)
    if optional:
        name = optional.group(1).strip()
    if description.startswith("- "):
        description = description[2:]
    return Parameter(name=name, type=type_expr, description=description)


def _split_sections(body: str) -> tuple[str, list[tuple[str, str]]]:
    """Split a comment body into the block text and its tag sections."""
    block: list[str] = []
    tags: list[tuple[str, list[str]]] = []
    in_fence = False
    for line in body.split("\n"):
        stripped = line.strip()
        if stripped.startswith("```"):
            in_fence = not in_fence
        match = None if in_fence else _TAG_LINE.match(stripped)
        if match:
            tags.append((match.group(1), [match.group(2)]))
        elif tags:
            tags[-1][1].append(line)
        else:
            block.append(line)
    sections = [(name, "\n".join(lines).strip()) for name, lines in tags]
    return "\n".join(block).strip("\n").rstrip(), sections


def parse_jsdoc(raw: Optional[str]) -> JsDoc:
    """Parse a raw doc comment into a JsDoc record.

    Args:
        raw: The ``/** ... */`` comment text, or None.

    Returns:
        The parsed JsDoc; ``EMPTY_JSDOC`` when ``raw`` is empty.
    """
    if not raw or not raw.strip():
        return EMPTY_JSDOC

    block, sections = _split_sections(strip_comment_markers(raw))

    values: dict = {
        "parameters": [],
        "throws_clauses": [],
        "see_clauses": [],
        "template_type_names": [],
        "extended_types": [],
        "implemented_types": [],
    }
    for name, text in sections:
        if name == "param":
            values["parameters"].append(_parse_param(text))
        elif name in ("return", "returns"):
            type_expr, description = split_type(text)
            values["return_clause"] = TypedDescription(type_expr, description)
            values["has_return"] = True
        elif name in ("throws", "exception"):
            type_expr, description = split_type(text)
            values["throws_clauses"].append(TypedDescription(type_expr, description))
        elif name == "see":
            if text:
                values["see_clauses"].append(text)
        elif name == "deprecated":
            values["deprecation_reason"] = text
        elif name in ("public", "protected", "private", "package"):
            values["visibility"] = Visibility.parse(name)
            type_expr, _ = split_type(text)
            if type_expr:
                values["type"] = type_expr
        elif name in ("const", "constant", "final"):
            values["is_const"] = True
            type_expr, _ = split_type(text)
            if type_expr:
                values["type"] = type_expr
        elif name == "define":
            values["is_define"] = True
            values["type"] = split_type(text)[0]
        elif name in ("type", "typedef", "enum"):
            type_expr, _ = split_type(text)
            if type_expr:
                values["type"] = type_expr
        elif name == "template":
            values["template_type_names"].extend(
                part for part in re.split(r"[\s,]+", text) if part
            )
        elif name in ("interface", "record"):
            values["is_interface"] = True
        elif name in ("constructor", "class"):
            values["is_constructor"] = True
        elif name in ("extends", "augments", "implements"):
            type_expr, rest = split_type(text)
            target = type_expr or _split_word(rest)[0]
            key = "implemented_types" if name == "implements" else "extended_types"
            if target:
                values[key].append(target)
        elif name == "override":
            values["is_override"] = True
        elif name == "fileoverview":
            values["is_fileoverview"] = True
            if not block:
                block = text
        else:
            logger.debug("Ignoring unsupported tag @%s", name)

    for key in list(values):
        if isinstance(values[key], list):
            values[key] = tuple(values[key])

    return JsDoc(original_comment=raw, block_comment=block, **values)
