"""
concourse-metrics command line interface.

Usage:
    concourse-metrics collect --config-path config.json --since 1h
    concourse-metrics collect --config-path config.json --sink datadog
    concourse-metrics show-build 1234 --config-path config.json
    concourse-metrics flatten plan.json
"""

from __future__ import annotations

import json
import re
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import click

from concourse_metrics import __version__
from concourse_metrics.application.collector import MetricsCollector
from concourse_metrics.config import CollectorConfig, load_config
from concourse_metrics.console import (
    print_collection_summary,
    print_error,
    print_header,
    print_steps,
)
from concourse_metrics.domain.exceptions import (
    CollectorError,
    ConfigurationError,
    PlanDecodeError,
)
from concourse_metrics.domain.flattener import flatten_plan
from concourse_metrics.domain.interfaces import MetricSinkInterface
from concourse_metrics.domain.plan import decode_plan
from concourse_metrics.infrastructure.concourse import ConcourseClient
from concourse_metrics.infrastructure.persistence import FilesystemBuildCache
from concourse_metrics.infrastructure.registry import SinkRegistry
from concourse_metrics.infrastructure.sinks import ConsoleSink
from concourse_metrics.logging_setup import setup_logging

_DURATION_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


class DurationParamType(click.ParamType):
    """A look-back window such as 90s, 30m, 1h or 2d."""

    name = "duration"

    def convert(
        self, value: Any, param: click.Parameter | None, ctx: click.Context | None
    ) -> timedelta:
        if isinstance(value, timedelta):
            return value
        match = re.fullmatch(r"\s*(\d+)\s*([smhd])\s*", str(value))
        if not match:
            self.fail(f"{value!r} is not a duration like 30m, 1h or 2d", param, ctx)
        amount, unit = match.groups()
        return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


DURATION = DurationParamType()


def _load_config_or_exit(config_path: Path) -> CollectorConfig:
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        print_error(str(e), "Check that the config file exists and is valid.")
        sys.exit(1)


def _connect(config: CollectorConfig) -> ConcourseClient:
    client = ConcourseClient(config.concourse.to_client_config())
    if config.concourse.username:
        client.authenticate()
    return client


def _create_sink(
    name: str, config: CollectorConfig, compact: bool
) -> MetricSinkInterface:
    """Instantiate a sink by name with the options it understands."""
    if name == "console":
        return SinkRegistry.create(name, pretty=not compact)
    if name == "datadog":
        if config.datadog is None:
            raise ConfigurationError(
                "The datadog sink needs a 'datadog' section in the config file"
            )
        return SinkRegistry.create(name, config=config.datadog.to_sink_config())
    return SinkRegistry.create(name)


@click.group()
@click.version_option(__version__, prog_name="concourse-metrics")
def cli() -> None:
    """Collect per-step timing metrics from finished Concourse builds."""


@cli.command()
@click.option(
    "--config-path",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the JSON config file",
)
@click.option(
    "--since",
    default="1h",
    type=DURATION,
    show_default=True,
    help="Collect builds that finished within this window",
)
@click.option(
    "--sink",
    "sink_name",
    default="console",
    show_default=True,
    help="Where to send metrics (console, datadog, or a plugin sink)",
)
@click.option("--compact", is_flag=True, help="One JSON line per build (console sink)")
@click.option(
    "--cache-path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Processed-build cache file (overrides the config file)",
)
@click.option("--no-cache", is_flag=True, help="Emit every build, remember nothing")
@click.option("--fail-fast", is_flag=True, help="Stop at the first failing build")
@click.option(
    "--log-file", default=None, type=click.Path(), help="Path to log file"
)
@click.option(
    "-v", "--verbose", is_flag=True, help="Enable verbose (DEBUG) logging to console"
)
def collect(
    config_path: Path,
    since: timedelta,
    sink_name: str,
    compact: bool,
    cache_path: Path | None,
    no_cache: bool,
    fail_fast: bool,
    log_file: str | None,
    verbose: bool,
) -> None:
    """Run one collection pass over recently finished builds."""
    logger = setup_logging(log_file=log_file, verbose=verbose)
    config = _load_config_or_exit(config_path)

    window_start = datetime.now(UTC) - since
    logger.info("Collecting builds finished since %s", window_start.isoformat())

    try:
        sink = _create_sink(sink_name, config, compact)
    except KeyError as e:
        print_error(str(e.args[0]) if e.args else str(e))
        sys.exit(1)
    except ConfigurationError as e:
        print_error(str(e))
        sys.exit(1)

    try:
        cache = None
        if not no_cache:
            cache = FilesystemBuildCache(cache_path or Path(config.cache_path))
        collector = MetricsCollector(
            source=_connect(config), sink=sink, cache=cache, fail_fast=fail_fast
        )
        result = collector.run(window_start)
    except CollectorError as e:
        logger.error("Collection failed: %s: %s", type(e).__name__, e)
        print_error(str(e))
        sys.exit(1)

    print_collection_summary(result)
    if result.failed:
        sys.exit(1)


@cli.command("show-build")
@click.argument("build_id", type=int)
@click.option(
    "--config-path",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the JSON config file",
)
@click.option("--table", "as_table", is_flag=True, help="Print a step table, not JSON")
@click.option("--compact", is_flag=True, help="Single-line JSON")
@click.option(
    "-v", "--verbose", is_flag=True, help="Enable verbose (DEBUG) logging to console"
)
def show_build(
    build_id: int, config_path: Path, as_table: bool, compact: bool, verbose: bool
) -> None:
    """Collect a single build and print it, without touching the cache."""
    setup_logging(verbose=verbose)
    config = _load_config_or_exit(config_path)

    try:
        client = _connect(config)
        sink = ConsoleSink(pretty=not compact)
        collector = MetricsCollector(source=client, sink=sink)
        metric = collector.collect_build(client.get_build(build_id))
    except CollectorError as e:
        print_error(str(e))
        sys.exit(1)

    if as_table:
        print_header(
            f"{metric.pipeline_name}/{metric.job_name} #{metric.name}",
            f"build {metric.id} - {metric.status}",
        )
        print_steps(metric.tasks)
    else:
        sink.emit(metric)


@cli.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def flatten(plan_file: Path) -> None:
    """Print the steps found in a saved build plan (JSON)."""
    try:
        try:
            raw = json.loads(plan_file.read_text())
        except json.JSONDecodeError as e:
            raise PlanDecodeError(f"Invalid JSON in {plan_file}: {e}") from e
        steps = flatten_plan(decode_plan(raw))
    except PlanDecodeError as e:
        print_error(str(e))
        sys.exit(1)

    print_steps(steps.values(), title=f"{len(steps)} steps in {plan_file.name}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
