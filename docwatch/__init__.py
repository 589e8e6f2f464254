"""Local documentation build-and-watch tool.

Renders the markdown documents of a directory into standalone HTML pages,
re-renders them whenever a source changes, and serves the result with
live reload.
"""

__version__ = "0.1.0"
