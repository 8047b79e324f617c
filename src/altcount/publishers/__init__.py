"""altcount output publishers."""

from .base import Publisher
from .json_counts import JsonCountsPublisher
from .tsv_counts import TsvCountsPublisher

__all__ = [
    "Publisher",
    "JsonCountsPublisher",
    "TsvCountsPublisher",
]
