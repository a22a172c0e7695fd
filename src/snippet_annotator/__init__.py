"""
Snippet PDF Annotator

Locate approximately-specified text snippets in extracted PDF page text and
draw highlights, underlines and comment callouts where they were found.
"""

__version__ = "1.0.0"
__license__ = "GPL-3.0-or-later"

# Package metadata
__all__ = [
    "__version__",
    "__license__",
]
