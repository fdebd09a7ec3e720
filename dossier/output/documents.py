"""Documentation records produced by the resolver.

A Comment is an ordered sequence of tokens, each either a rendered HTML
fragment or a (possibly unresolved) link. The descriptor records below
are what page templates and the JSON writer consume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from dossier.parsers.jsdoc import Visibility


@dataclass(frozen=True)
class Token:
    """A single Comment token.

    Exactly one of the two shapes is populated: ``html`` for a rendered
    fragment, or ``text`` (with an optional ``href``) for a link. An empty
    href means the link did not resolve and renders as plain text.
    """

    html: Optional[str] = None
    text: Optional[str] = None
    href: str = ""

    def __post_init__(self) -> None:
        if (self.html is None) == (self.text is None):
            raise ValueError("Token must carry either html or link text, not both")
        if self.html is not None and self.href:
            raise ValueError("An html token cannot carry an href")

    @property
    def is_link(self) -> bool:
        return self.text is not None

    def to_dict(self) -> dict[str, Any]:
        if self.html is not None:
            return {"html": self.html}
        return {"text": self.text, "href": self.href}


@dataclass(frozen=True)
class Comment:
    """An ordered sequence of tokens.

    A Comment with no tokens means "no documentation"; it is distinct from
    a Comment holding one empty html token.
    """

    tokens: tuple[Token, ...] = ()

    @classmethod
    def from_html(cls, html: str) -> Comment:
        return cls((Token(html=html),))

    @classmethod
    def from_link(cls, text: str, href: str = "") -> Comment:
        return cls((Token(text=text, href=href),))

    @property
    def token_count(self) -> int:
        return len(self.tokens)

    @property
    def is_empty(self) -> bool:
        return not self.tokens

    def plain_text(self) -> str:
        """Concatenate the token text, html fragments included as-is."""
        return "".join(t.html if t.html is not None else t.text or "" for t in self.tokens)

    def to_dict(self) -> dict[str, Any]:
        return {"tokens": [t.to_dict() for t in self.tokens]}


EMPTY_COMMENT = Comment()


@dataclass(frozen=True)
class SourceLink:
    """Location of a declaration, relative to the output directory."""

    path: str = ""
    line: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "line": self.line}


@dataclass
class Detail:
    """A parameter, return value or thrown type."""

    name: str = ""
    type: Comment = EMPTY_COMMENT
    description: Comment = EMPTY_COMMENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.to_dict(),
            "description": self.description.to_dict(),
        }


@dataclass
class Tags:
    is_const: bool = False
    is_deprecated: bool = False
    is_module: bool = False
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_const": self.is_const,
            "is_deprecated": self.is_deprecated,
            "is_module": self.is_module,
            "is_default": self.is_default,
        }


@dataclass
class BaseProperty:
    """Details shared by function and property descriptors.

    Attributes:
        name: Display name of the member.
        source: Where the member was declared.
        description: Rendered block comment.
        defined_by: Link to the type the member is inherited from, if any.
        overrides: Link to the nearest overridden class member, if any.
        specified_by: Links to interface declarations of the member.
        visibility: Effective visibility.
        deprecation: Rendered deprecation notice, if deprecated.
        see_also: Rendered ``@see`` references.
        tags: Boolean markers.
    """

    name: str
    source: SourceLink = field(default_factory=SourceLink)
    description: Comment = EMPTY_COMMENT
    defined_by: Optional[Comment] = None
    overrides: Optional[Comment] = None
    specified_by: list[Comment] = field(default_factory=list)
    visibility: Visibility = Visibility.PUBLIC
    deprecation: Optional[Comment] = None
    see_also: list[Comment] = field(default_factory=list)
    tags: Tags = field(default_factory=Tags)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary.

        Returns:
            Dictionary representation of the shared member details.
        """
        return {
            "name": self.name,
            "source": self.source.to_dict(),
            "description": self.description.to_dict(),
            "defined_by": self.defined_by.to_dict() if self.defined_by else None,
            "overrides": self.overrides.to_dict() if self.overrides else None,
            "specified_by": [c.to_dict() for c in self.specified_by],
            "visibility": self.visibility.value,
            "deprecation": self.deprecation.to_dict() if self.deprecation else None,
            "see_also": [c.to_dict() for c in self.see_also],
            "tags": self.tags.to_dict(),
        }


@dataclass
class Property:
    base: BaseProperty
    type: Comment = EMPTY_COMMENT

    def to_dict(self) -> dict[str, Any]:
        return {"base": self.base.to_dict(), "type": self.type.to_dict()}


@dataclass
class Function:
    """A documented function, method or constructor."""

    base: BaseProperty
    is_constructor: bool = False
    parameters: list[Detail] = field(default_factory=list)
    returns: Optional[Detail] = None
    thrown: list[Detail] = field(default_factory=list)
    template_names: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": self.base.to_dict(),
            "is_constructor": self.is_constructor,
            "parameters": [p.to_dict() for p in self.parameters],
            "returns": self.returns.to_dict() if self.returns else None,
            "thrown": [t.to_dict() for t in self.thrown],
            "template_names": list(self.template_names),
        }


@dataclass
class Report:
    """Members found by one inspection pass."""

    functions: list[Function] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
    compiler_constants: list[Property] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.functions or self.properties or self.compiler_constants)

    def to_dict(self) -> dict[str, Any]:
        return {
            "functions": [f.to_dict() for f in self.functions],
            "properties": [p.to_dict() for p in self.properties],
            "compiler_constants": [c.to_dict() for c in self.compiler_constants],
        }
