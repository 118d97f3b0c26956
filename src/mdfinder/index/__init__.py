"""Index lifecycle, caching and query evaluation."""
