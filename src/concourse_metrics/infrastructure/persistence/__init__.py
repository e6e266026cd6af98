"""
Persistence adapters for the processed-build cache.
"""

from concourse_metrics.infrastructure.persistence.filesystem import (
    FilesystemBuildCache,
)
from concourse_metrics.infrastructure.persistence.memory import InMemoryBuildCache

__all__ = [
    "InMemoryBuildCache",
    "FilesystemBuildCache",
]
