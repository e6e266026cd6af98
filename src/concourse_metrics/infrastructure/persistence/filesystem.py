"""
Filesystem implementation of the processed-build cache.

Stores a JSON object mapping build id to a processed flag, so repeated
collection passes skip builds that were already emitted.
"""

import json
from pathlib import Path

from concourse_metrics.domain.exceptions import CacheError
from concourse_metrics.domain.interfaces import BuildCacheInterface


class FilesystemBuildCache(BuildCacheInterface):
    """
    Persistent processed-build cache.

    The file is loaded once at construction and rewritten after every
    mark_processed() call.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._processed: dict[int, bool] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[int, bool]:
        """Load the cache file, or start empty if it does not exist yet."""
        if not self._path.exists():
            return {}

        try:
            with open(self._path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CacheError(f"Failed to read cache {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise CacheError(
                f"Expected object in {self._path}, got {type(data).__name__}"
            )
        try:
            return {int(build_id): bool(flag) for build_id, flag in data.items()}
        except ValueError as e:
            raise CacheError(f"Invalid build id in {self._path}: {e}") from e

    def _flush_atomic(self) -> None:
        """Rewrite the cache file using write-to-temp + rename."""
        data = {str(build_id): flag for build_id, flag in self._processed.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with open(temp_path, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            temp_path.replace(self._path)  # Atomic on POSIX
        except OSError as e:
            raise CacheError(f"Failed to write cache {self._path}: {e}") from e

    def is_processed(self, build_id: int) -> bool:
        return self._processed.get(build_id, False)

    def mark_processed(self, build_id: int) -> None:
        self._processed[build_id] = True
        self._flush_atomic()
