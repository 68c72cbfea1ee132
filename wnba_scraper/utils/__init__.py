"""Shared utilities for the importer."""
