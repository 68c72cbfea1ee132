"""WNBA league data importer: fetch, parse and persist provider files."""

__version__ = "1.0.0"
