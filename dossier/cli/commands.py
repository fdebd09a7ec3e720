"""CLI commands for JS Dossier.

Provides the Click-based command group 'dossier' with subcommands for
generating documentation pages, rendering a single comment, and
inspecting one type's resolved documentation.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

import click

from dossier import __version__
from dossier.analysis.graph_builder import GraphBuilder
from dossier.analysis.registry import TypeRegistry
from dossier.analysis.types import TypeGraphError
from dossier.generators.comment_parser import CommentParser
from dossier.generators.documenter import Documenter
from dossier.generators.link_factory import LinkFactory
from dossier.output.html import HtmlWriter, JsonWriter, render_comment
from dossier.parsers.js_parser import JSParser
from dossier.parsers.structure import ModuleInfo
from dossier.utils.config import OUTPUT_FORMATS, AppConfig, load_config
from dossier.utils.logging import setup_logging

logger = logging.getLogger(__name__)

_SOURCE_SUFFIXES = (".js", ".mjs")


def _collect_files(paths: Iterable[str]) -> list[Path]:
    """Collect JavaScript files from files and directories.

    Args:
        paths: File or directory paths to scan.

    Returns:
        Source file paths, directories expanded in sorted order.
    """
    files: list[Path] = []
    for path in paths:
        root = Path(path)
        if root.is_file():
            files.append(root)
        elif root.is_dir():
            for suffix in _SOURCE_SUFFIXES:
                files.extend(sorted(root.rglob(f"*{suffix}")))
        else:
            logger.warning("Skipping %s: no such file or directory", root)
    return files


def _parse_file(parser: JSParser, file_path: Path) -> Optional[ModuleInfo]:
    """Parse a source file.

    Args:
        parser: The JavaScript parser.
        file_path: Path to the source file.

    Returns:
        A ModuleInfo object, or None on error.
    """
    try:
        return parser.parse_file(str(file_path))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Skipping %s: %s", file_path, e)
    return None


def _parse_files(files: Iterable[Path]) -> list[ModuleInfo]:
    parser = JSParser()
    parsed = (_parse_file(parser, f) for f in files)
    return [info for info in parsed if info is not None]


def _build_registry(
    config: AppConfig, scripts: list[ModuleInfo], modules: list[ModuleInfo]
) -> TypeRegistry:
    """Build the populated type registry for a set of parsed files.

    Args:
        config: Application configuration.
        scripts: Parsed script files declaring globals.
        modules: Parsed ES6 module files.

    Returns:
        The populated registry.
    """
    registry = TypeRegistry(
        default_visibility=config.inspection.visibility,
        visibility_overrides=config.inspection.file_visibilities(),
    )
    builder = GraphBuilder(registry)
    for info in scripts:
        builder.add_script(info)
    for info in modules:
        builder.add_module(info)
    return builder.build()


@click.group()
@click.version_option(version=__version__, prog_name="dossier")
@click.option(
    "--config",
    "config_path",
    type=click.Path(),
    default=None,
    help="Path to the YAML configuration file.",
)
@click.pass_context
def dossier(ctx: click.Context, config_path: Optional[str]) -> None:
    """JS Dossier: generate API documentation from JSDoc comments."""
    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e
    setup_logging(
        level=config.logging.level,
        log_format=config.logging.format,
        log_file=config.logging.file,
    )
    ctx.obj = config


@dossier.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option(
    "--module",
    "modules",
    multiple=True,
    type=click.Path(exists=True),
    help="ES6 module file or directory. Repeatable.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Output format.",
)
@click.option("--output-dir", type=click.Path(), default=None, help="Output directory.")
@click.pass_obj
def generate(
    config: AppConfig,
    paths: tuple[str, ...],
    modules: tuple[str, ...],
    output_format: Optional[str],
    output_dir: Optional[str],
) -> None:
    """Generate documentation pages for JavaScript sources.

    PATHS are script files (or directories of them) that declare global
    types; --module marks ES6 module files. Both add to the sources listed
    in the configuration file.
    """
    script_files = _collect_files([*paths, *config.sources.sources])
    module_files = _collect_files([*modules, *config.sources.modules])
    if not script_files and not module_files:
        raise click.UsageError("No source files given.")
    click.echo(f"Found {len(script_files) + len(module_files)} source files")

    with click.progressbar(script_files, label="Parsing scripts") as bar:
        scripts = _parse_files(bar)
    with click.progressbar(module_files, label="Parsing modules") as bar:
        parsed_modules = _parse_files(bar)

    registry = _build_registry(config, scripts, parsed_modules)
    docs = Documenter(registry, type_filters=config.inspection.type_filters).document_all()

    out_dir = output_dir or config.output.output_dir
    if (output_format or config.output.default_format) == "json":
        JsonWriter(output_dir=out_dir).write_all(docs)
    else:
        HtmlWriter(output_dir=out_dir).write_all(docs)
    click.echo(f"Documented {len(docs)} types in {out_dir}")


@dossier.command()
@click.argument("text")
@click.option("--summary", is_flag=True, help="Render only the first sentence.")
def render(text: str, summary: bool) -> None:
    """Render one doc comment string to HTML."""
    parser = CommentParser()
    link_factory = LinkFactory(TypeRegistry())
    if summary:
        comment = parser.get_summary(text, link_factory)
    else:
        comment = parser.parse_comment(text, link_factory)
    click.echo(render_comment(comment))


@dossier.command("inspect")
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option(
    "--module",
    "modules",
    multiple=True,
    type=click.Path(exists=True),
    help="ES6 module file or directory. Repeatable.",
)
@click.option("--type", "type_name", required=True, help="Qualified type name.")
@click.pass_obj
def inspect_type(
    config: AppConfig, paths: tuple[str, ...], modules: tuple[str, ...], type_name: str
) -> None:
    """Print one type's resolved documentation as JSON."""
    scripts = _parse_files(_collect_files(paths))
    parsed_modules = _parse_files(_collect_files(modules))
    registry = _build_registry(config, scripts, parsed_modules)

    nominal = registry.get_type(type_name)
    if nominal is None:
        raise click.ClickException(f"Unknown type: {type_name}")

    documenter = Documenter(registry, type_filters=config.inspection.type_filters)
    try:
        doc = documenter.document_type(nominal)
    except TypeGraphError as e:
        raise click.ClickException(f"Cannot document {type_name}: {e}") from e
    click.echo(json.dumps(doc.to_dict(), indent=2))
