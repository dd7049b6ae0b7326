# Fetcher module
from .http import HttpFetcher

__all__ = ["HttpFetcher"]
