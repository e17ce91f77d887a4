"""Command-line interface for tuning password-hashing parameters."""

import argparse
import logging
import sys

import kdf_tune

from .constants import (
    DEFAULT_TARGET_SECONDS,
    PBKDF2_ITERATIONS_DEFAULT,
    memory_limit_from_env,
    warm_up_requested,
)
from .core import (
    FAMILY_ORDER,
    Pbkdf2Bounds,
    Recommendation,
    TuningBounds,
    run_optimal_benchmarks,
    validate_target,
)
from .probes import warm_up
from .report import render_config, render_json


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run the optimal-parameter benchmarks.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        int: ``0`` on success, ``1`` when a benchmark failed.
    """

    parser = argparse.ArgumentParser(
        prog="kdf-tune",
        description="Find the dearest password-hashing parameters that fit a time budget.",
    )
    parser.add_argument("--version", action="version", version=kdf_tune.__version__)
    parser.add_argument(
        "-c",
        "--clock-limit",
        type=float,
        default=DEFAULT_TARGET_SECONDS,
        help="target seconds per hash (default: %(default)s)",
    )
    parser.add_argument(
        "-L",
        "--memory-limit",
        type=int,
        help="memory ceiling as a KiB power of two, or KDF_TUNE_MEMORY_LIMIT",
    )
    parser.add_argument(
        "--family",
        action="append",
        choices=[family.value for family in FAMILY_ORDER],
        help="only tune this family; may be repeated",
    )
    parser.add_argument("--json", action="store_true", help="print JSON lines")
    parser.add_argument(
        "--ci",
        action="store_true",
        help="time PBKDF2 digests at the default instead of the maximum iterations",
    )
    parser.add_argument("--warm-up", action="store_true", help="warm up Argon2 first")
    noise = parser.add_mutually_exclusive_group()
    noise.add_argument("-v", "--verbose", action="store_true")
    noise.add_argument("-q", "--quiet", action="store_true")

    args = parser.parse_args(argv)
    try:
        target = validate_target(args.clock_limit)
    except ValueError as exc:
        parser.error(f"--clock-limit: {exc}")
    try:
        memory_limit = args.memory_limit
        if memory_limit is None:
            memory_limit = memory_limit_from_env()
        bounds = (
            TuningBounds(pbkdf2=Pbkdf2Bounds(reference=PBKDF2_ITERATIONS_DEFAULT))
            if args.ci
            else TuningBounds()
        )
        want_warm_up = args.warm_up or warm_up_requested()
    except RuntimeError as exc:
        parser.error(str(exc))
    if memory_limit is not None and memory_limit < 1:
        parser.error("--memory-limit must be a positive exponent")

    _configure_logging(args.verbose, args.quiet)
    if want_warm_up:
        warm_up()

    render = render_json if args.json else render_config

    def emit(rec: Recommendation) -> None:
        print(render(rec), flush=True)

    run = run_optimal_benchmarks(
        target,
        memory_exponent=memory_limit,
        bounds=bounds,
        families=args.family,
        on_recommendation=emit,
    )
    if not run.succeeded:
        print(f"Benchmark failed: {run.error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
