"""IO layer: response caching."""
