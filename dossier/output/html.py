"""Page writers for resolved type documentation.

HtmlWriter renders one page per type plus an index through the Jinja2
templates in ``dossier/templates``; JsonWriter dumps the same records
as JSON documents.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup, escape

from dossier.generators.documenter import TypeDocumentation
from dossier.output.documents import Comment

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATES_DIR = Path(__file__).parent.parent / "templates"


def render_comment(comment: Optional[Comment]) -> Markup:
    """Render a Comment as an HTML fragment.

    Html tokens are emitted as-is; link tokens become anchors, or plain
    escaped text when unresolved.

    Args:
        comment: The comment to render, or None.

    Returns:
        Markup safe to embed in an autoescaped template.
    """
    if comment is None:
        return Markup("")
    parts = []
    for token in comment.tokens:
        if token.html is not None:
            parts.append(Markup(token.html))
        elif token.href:
            parts.append(Markup('<a href="{}">{}</a>').format(token.href, token.text))
        else:
            parts.append(escape(token.text))
    return Markup("").join(parts)


class HtmlWriter:
    """Writes HTML documentation pages.

    Each type gets ``<page>`` as named by its TypeDocumentation; the index
    lists every type with its summary.
    """

    def __init__(self, output_dir: str = "docs/api", templates_dir: Optional[str] = None) -> None:
        """Initialize the HTML writer.

        Args:
            output_dir: Directory pages are written to.
            templates_dir: Directory holding the page templates. Uses the
                packaged templates if not specified.
        """
        self.output_dir = Path(output_dir)
        templates_path = Path(templates_dir) if templates_dir else _DEFAULT_TEMPLATES_DIR
        if not templates_path.exists():
            logger.warning("Templates directory not found: %s", templates_path)

        self._env = Environment(
            loader=FileSystemLoader(str(templates_path)),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=True,
        )
        self._env.filters["comment"] = render_comment

    def write_type(self, doc: TypeDocumentation) -> Path:
        """Write the page for one type.

        Args:
            doc: The resolved type documentation.

        Returns:
            Path to the written page.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / doc.page
        html = self._env.get_template("type.html.j2").render(doc=doc)
        output_path.write_text(html, encoding="utf-8")
        logger.debug("Wrote %s", output_path)
        return output_path

    def write_index(self, docs: list[TypeDocumentation]) -> Path:
        """Write ``index.html`` linking every documented type.

        Args:
            docs: All resolved type documentation.

        Returns:
            Path to the written index.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / "index.html"
        html = self._env.get_template("index.html.j2").render(docs=docs)
        output_path.write_text(html, encoding="utf-8")
        return output_path

    def write_all(self, docs: list[TypeDocumentation]) -> list[Path]:
        paths = [self.write_type(doc) for doc in docs]
        paths.append(self.write_index(docs))
        logger.info("Wrote %d HTML pages to %s", len(paths), self.output_dir)
        return paths


class JsonWriter:
    """Writes one JSON document per type."""

    def __init__(self, output_dir: str = "docs/api") -> None:
        self.output_dir = Path(output_dir)

    def write_type(self, doc: TypeDocumentation) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / (Path(doc.page).stem + ".json")
        output_path.write_text(json.dumps(doc.to_dict(), indent=2), encoding="utf-8")
        return output_path

    def write_all(self, docs: list[TypeDocumentation]) -> list[Path]:
        paths = [self.write_type(doc) for doc in docs]
        logger.info("Wrote %d JSON documents to %s", len(paths), self.output_dir)
        return paths
