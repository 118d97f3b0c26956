"""mdfinder - fast fuzzy and grep search over Markdown document trees."""

__version__ = "0.1.0"
