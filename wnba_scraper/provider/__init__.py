"""External data provider: download and structural parsing."""

from .fetcher import ProviderFetcher, RawPage, RawPayload
from .parser import PayloadParser

__all__ = ["PayloadParser", "ProviderFetcher", "RawPage", "RawPayload"]
