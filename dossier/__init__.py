"""JS Dossier.

Generates API reference documentation for JavaScript code from its
JSDoc comments, resolving inherited member docs, visibility and
cross-type links.
"""

__version__ = "0.1.0"
