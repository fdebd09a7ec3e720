"""Entry point for JS Dossier.

Initializes configuration and logging, then delegates to the CLI.
"""

import logging

from dossier import __version__
from dossier.cli.commands import dossier
from dossier.utils.config import load_config
from dossier.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Initialize the application and launch the CLI."""
    config = load_config()
    setup_logging(
        level=config.logging.level,
        log_format=config.logging.format,
        log_file=config.logging.file,
    )
    logger.debug("JS Dossier v%s starting", __version__)
    dossier(prog_name="dossier")


if __name__ == "__main__":
    main()
