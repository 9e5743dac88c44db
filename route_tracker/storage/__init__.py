"""Run storage backends."""

from .base import RunStorage
from .http_client import HttpRunStorage
from .memory import InMemoryRunStorage

__all__ = ["RunStorage", "HttpRunStorage", "InMemoryRunStorage"]
