"""
In-memory implementation of the processed-build cache.

Useful for testing and for one-shot runs that should not remember anything.
"""

from concourse_metrics.domain.interfaces import BuildCacheInterface


class InMemoryBuildCache(BuildCacheInterface):
    """Simple in-memory cache for testing."""

    def __init__(self, processed: set[int] | None = None) -> None:
        self._processed: set[int] = set(processed or ())

    def is_processed(self, build_id: int) -> bool:
        return build_id in self._processed

    def mark_processed(self, build_id: int) -> None:
        self._processed.add(build_id)
