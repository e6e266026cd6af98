"""
Sink Registry with Entry Points Discovery.

Provides dynamic sink loading via Python entry points (concourse_metrics.sinks group).
External packages can register sinks in their pyproject.toml:

    [project.entry-points."concourse_metrics.sinks"]
    statsd = "mypackage.sinks:StatsdSink"
"""

import warnings
from importlib.metadata import entry_points
from typing import Any

from concourse_metrics.domain.interfaces import MetricSinkInterface

ENTRY_POINT_GROUP = "concourse_metrics.sinks"


class SinkRegistry:
    """
    Registry for MetricSinkInterface implementations.

    Discovers sinks via the 'concourse_metrics.sinks' entry point group.
    Uses lazy loading - entry points are only loaded on first access.

    Example usage:
        registry = SinkRegistry()
        sink = registry.create("console", pretty=False)
    """

    _sinks: dict[str, type[MetricSinkInterface]] = {}
    _loaded: bool = False

    @classmethod
    def _load_entry_points(cls) -> None:
        """Load sinks from entry points (lazy, called once)."""
        if cls._loaded:
            return

        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                cls._sinks.setdefault(ep.name, ep.load())
            except Exception as e:
                warnings.warn(
                    f"Failed to load sink '{ep.name}' from entry point: {e}",
                    stacklevel=2,
                )

        cls._loaded = True

    @classmethod
    def register(cls, name: str, sink_class: type[MetricSinkInterface]) -> None:
        """
        Manually register a sink class.

        Args:
            name: Sink identifier (e.g., "console")
            sink_class: Class implementing MetricSinkInterface
        """
        cls._sinks[name] = sink_class

    @classmethod
    def get(cls, name: str) -> type[MetricSinkInterface]:
        """
        Get a sink class by name.

        Raises:
            KeyError: If sink not found
        """
        cls._load_entry_points()
        if name not in cls._sinks:
            available = ", ".join(sorted(cls._sinks)) or "(none)"
            raise KeyError(f"Sink '{name}' not found. Available sinks: {available}")
        return cls._sinks[name]

    @classmethod
    def create(cls, name: str, **config: Any) -> MetricSinkInterface:
        """
        Create a sink instance by name.

        Args:
            name: Sink identifier
            **config: Configuration passed to the sink constructor

        Raises:
            KeyError: If sink not found
            TypeError: If config doesn't match constructor signature
        """
        return cls.get(name)(**config)

    @classmethod
    def available(cls) -> list[str]:
        """List available sink names."""
        cls._load_entry_points()
        return sorted(cls._sinks)

    @classmethod
    def clear(cls) -> None:
        """
        Clear all registered sinks (useful for testing).

        Also resets the loaded flag so entry points can be reloaded.
        """
        cls._sinks.clear()
        cls._loaded = False
