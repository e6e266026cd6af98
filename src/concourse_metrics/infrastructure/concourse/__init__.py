"""
Build source adapters for the Concourse API.
"""

from concourse_metrics.infrastructure.concourse.client import (
    ConcourseClient,
    ConcourseClientConfig,
)
from concourse_metrics.infrastructure.concourse.memory import InMemoryBuildSource

__all__ = [
    "ConcourseClient",
    "ConcourseClientConfig",
    "InMemoryBuildSource",
]
