"""Cost-parameter search for password-hashing algorithms.

This module finds, for each supported hashing family, the most expensive
parameters whose measured run time still fits a target budget. Every family
is tuned through :func:`search`, a shrink/grow/rollback loop driven by a
:class:`SearchPlan`: memory-hard families first give up memory until a
single hash fits the budget, then raise their time or operation cost until
the next step would overshoot it. PBKDF2 extrapolates its iteration count
from one reference measurement instead. :func:`run_optimal_benchmarks`
runs the three strategies in a fixed order and stops on the first probe
failure.
"""

import logging
import math
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Protocol, TypeVar

from .constants import (
    ARGON2_MEMORY_MAX,
    ARGON2_MEMORY_MIN,
    ARGON2_THREADS,
    ARGON2_TIME_COST_MAX,
    ARGON2_TIME_COST_MIN,
    DEFAULT_MEMORY_EXPONENT,
    PBKDF2_ITERATION_STEP,
    PBKDF2_ITERATIONS_MAX,
    PBKDF2_ITERATIONS_MIN,
    SCRYPT_MEMORY_MAX,
    SCRYPT_MEMORY_MIN,
    SCRYPT_OPERATIONS_MAX,
    SCRYPT_OPERATIONS_PER_KIB,
    pbkdf2_reference,
)

logger = logging.getLogger(__name__)


class Family(str, Enum):
    ARGON2 = "argon2"
    SCRYPT = "scrypt"
    PBKDF2 = "pbkdf2"


FAMILY_ORDER = (Family.ARGON2, Family.SCRYPT, Family.PBKDF2)


class Digest(str, Enum):
    """Digest primitives PBKDF2 can be keyed with."""

    SHA512 = "SHA2-512"
    SHA256 = "SHA2-256"

    @property
    def hashlib_name(self) -> str:
        return "sha512" if self is Digest.SHA512 else "sha256"


class ProbeError(RuntimeError):
    """Raised when a hash computation could not be measured."""


@dataclass(frozen=True)
class Argon2Parameters:
    memory_exponent: int
    time_cost: int
    threads: int = ARGON2_THREADS

    @property
    def memory_kib(self) -> int:
        return 1 << self.memory_exponent

    def describe(self) -> str:
        return (
            f"memcost={self.memory_exponent} ({self.memory_kib} KiB) "
            f"timecost={self.time_cost} threads={self.threads}"
        )


@dataclass(frozen=True)
class ScryptParameters:
    memory_exponent: int
    operation_limit: int

    @classmethod
    def for_memory(cls, memory_exponent: int) -> "ScryptParameters":
        """Return parameters with the operation limit derived from memory.

        Args:
            memory_exponent: Memory limit as a KiB power of two.

        Returns:
            ScryptParameters: ``operation_limit`` set to ``32 * 2**exponent``.
        """

        return cls(
            memory_exponent=memory_exponent,
            operation_limit=(1 << memory_exponent) * SCRYPT_OPERATIONS_PER_KIB,
        )

    @property
    def memory_kib(self) -> int:
        return 1 << self.memory_exponent

    def describe(self) -> str:
        return (
            f"memlimit={self.memory_exponent} ({self.memory_kib} KiB) "
            f"opslimit={self.operation_limit}"
        )


@dataclass(frozen=True)
class Pbkdf2Parameters:
    digest: Digest
    iterations: int

    def describe(self) -> str:
        return f"digest={self.digest.value} iterations={self.iterations}"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one timed hash computation."""

    elapsed: float
    ok: bool = True
    error: str | None = None


class Probe(Protocol):
    def run(self, parameters: Any) -> ProbeResult:
        """Hash once with ``parameters`` and return the elapsed time."""


@dataclass(frozen=True)
class Argon2Bounds:
    memory_min: int = ARGON2_MEMORY_MIN
    memory_max: int = ARGON2_MEMORY_MAX
    time_min: int = ARGON2_TIME_COST_MIN
    time_max: int = ARGON2_TIME_COST_MAX

    def __post_init__(self) -> None:
        if self.memory_min > self.memory_max:
            raise ValueError("memory_min must not exceed memory_max")
        if not 1 <= self.time_min <= self.time_max:
            raise ValueError("time bounds must satisfy 1 <= time_min <= time_max")


@dataclass(frozen=True)
class ScryptBounds:
    memory_min: int = SCRYPT_MEMORY_MIN
    memory_max: int = SCRYPT_MEMORY_MAX
    operations_max: int = SCRYPT_OPERATIONS_MAX

    def __post_init__(self) -> None:
        if self.memory_min > self.memory_max:
            raise ValueError("memory_min must not exceed memory_max")
        if self.operations_max <= 0:
            raise ValueError("operations_max must be positive")


@dataclass(frozen=True)
class Pbkdf2Bounds:
    iterations_min: int = PBKDF2_ITERATIONS_MIN
    iterations_max: int = PBKDF2_ITERATIONS_MAX
    reference: int = PBKDF2_ITERATIONS_MAX

    def __post_init__(self) -> None:
        if not 0 < self.iterations_min <= self.iterations_max:
            raise ValueError("iteration bounds must satisfy 0 < min <= max")
        if not self.iterations_min <= self.reference <= self.iterations_max:
            raise ValueError("reference must lie within the iteration bounds")


def default_pbkdf2_bounds() -> Pbkdf2Bounds:
    """Return PBKDF2 bounds whose reference honours ``KDF_TUNE_CI``."""

    return Pbkdf2Bounds(reference=pbkdf2_reference())


@dataclass(frozen=True)
class TuningBounds:
    argon2: Argon2Bounds = field(default_factory=Argon2Bounds)
    scrypt: ScryptBounds = field(default_factory=ScryptBounds)
    pbkdf2: Pbkdf2Bounds = field(default_factory=default_pbkdf2_bounds)


@dataclass(frozen=True)
class ProbeSet:
    """One probe per hashing family."""

    argon2: Probe
    scrypt: Probe
    pbkdf2: Probe


@dataclass(frozen=True)
class Recommendation:
    """Final parameters chosen for one family."""

    family: Family
    parameters: Argon2Parameters | ScryptParameters | Pbkdf2Parameters
    elapsed: float
    target: float
    target_met: bool = True

    def to_dict(self) -> dict:
        """Return a JSON-serialisable view of the recommendation."""

        params = {
            key: value.value if isinstance(value, Enum) else value
            for key, value in asdict(self.parameters).items()
        }
        return {
            "family": self.family.value,
            "parameters": params,
            "elapsed": self.elapsed,
            "target": self.target,
            "target_met": self.target_met,
        }


@dataclass
class BenchmarkRun:
    """Recommendations gathered by :func:`run_optimal_benchmarks`."""

    recommendations: list[Recommendation] = field(default_factory=list)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def unmet(self) -> list[Family]:
        return [rec.family for rec in self.recommendations if not rec.target_met]


P = TypeVar("P")


@dataclass(frozen=True)
class SearchPlan(Generic[P]):
    """Capabilities the generic search needs for one family.

    ``shrink`` and ``grow`` return the next cheaper or dearer candidate, or
    ``None`` when that candidate would leave the configured bounds. A plan
    without ``grow`` stops as soon as a sample fits the target.
    """

    probe: Callable[[P], float]
    shrink: Callable[[P], P | None]
    grow: Callable[[P], P | None] | None = None


@dataclass(frozen=True)
class SearchOutcome(Generic[P]):
    parameters: P
    elapsed: float
    target_met: bool


def search(plan: SearchPlan[P], start: P, target: float) -> SearchOutcome[P]:
    """Find the dearest parameters whose measured time fits ``target``.

    Args:
        plan: Probe and step functions for one family.
        start: Parameters probed first.
        target: Time budget in seconds. A sample equal to it fits.

    Returns:
        SearchOutcome: Final parameters with the elapsed time they were
        measured at. ``target_met`` is ``False`` when the cheapest
        permissible parameters were still too slow.

    Raises:
        ProbeError: If any probe fails; nothing is retried.
    """

    current = start
    elapsed = plan.probe(current)

    while elapsed > target:
        cheaper = plan.shrink(current)
        if cheaper is None:
            return SearchOutcome(current, elapsed, target_met=False)
        current = cheaper
        elapsed = plan.probe(current)

    if plan.grow is None:
        return SearchOutcome(current, elapsed, target_met=True)

    while True:
        dearer = plan.grow(current)
        if dearer is None:
            logger.info("Reached maximum cost while still within target.")
            break
        previous, previous_elapsed = current, elapsed
        current = dearer
        elapsed = plan.probe(current)
        if elapsed > target:
            # The overshooting sample is discarded
            current, elapsed = previous, previous_elapsed
            break

    return SearchOutcome(current, elapsed, target_met=True)


def _prober(family: Family, probe: Probe) -> Callable[[Any], float]:
    def measure(parameters: Any) -> float:
        result = probe.run(parameters)
        if not result.ok:
            raise ProbeError(
                f"{family.value} probe failed for {parameters.describe()}: "
                f"{result.error or 'unknown error'}"
            )
        logger.info(
            "%-6s %s elapsed=%.6fs", family.value, parameters.describe(), result.elapsed
        )
        return result.elapsed

    return measure


def _soft_stop(family: Family, outcome: SearchOutcome) -> None:
    if not outcome.target_met:
        logger.warning(
            "Reached minimum %s cost; algorithm is still too slow, giving up.",
            family.value,
        )


def _clamp_memory(family: Family, exponent: int, low: int, high: int) -> int:
    clamped = min(max(exponent, low), high)
    if clamped != exponent:
        logger.warning(
            "Memory limit 2^%d KiB is outside the %s range [%d, %d]; using 2^%d KiB.",
            exponent,
            family.value,
            low,
            high,
            clamped,
        )
    return clamped


def tune_argon2(
    probe: Probe,
    target: float,
    memory_exponent: int,
    bounds: Argon2Bounds | None = None,
) -> Recommendation:
    """Tune Argon2id memory and time cost for ``target`` seconds.

    Memory starts at ``memory_exponent`` and is only given up while a single
    pass at minimum time cost is too slow; time cost then grows by one until
    the next step would overshoot.

    Args:
        probe: Argon2 probe.
        target: Time budget in seconds.
        memory_exponent: Memory ceiling as a KiB power of two.
        bounds: Parameter bounds, defaults to :class:`Argon2Bounds`.

    Returns:
        Recommendation: Final Argon2 parameters.
    """

    bounds = bounds or Argon2Bounds()
    logger.info("Beginning automatic optimal Argon2 benchmark ...")
    logger.info("This does not test multithreading; threads are fixed at 1.")
    memory = _clamp_memory(
        Family.ARGON2, memory_exponent, bounds.memory_min, bounds.memory_max
    )

    def shrink(params: Argon2Parameters) -> Argon2Parameters | None:
        if params.memory_exponent <= bounds.memory_min:
            return None
        return replace(params, memory_exponent=params.memory_exponent - 1)

    def grow(params: Argon2Parameters) -> Argon2Parameters | None:
        if params.time_cost >= bounds.time_max:
            return None
        return replace(params, time_cost=params.time_cost + 1)

    plan = SearchPlan(_prober(Family.ARGON2, probe), shrink, grow)
    start = Argon2Parameters(memory_exponent=memory, time_cost=bounds.time_min)
    outcome = search(plan, start, target)
    _soft_stop(Family.ARGON2, outcome)
    return Recommendation(
        Family.ARGON2, outcome.parameters, outcome.elapsed, target, outcome.target_met
    )


def tune_scrypt(
    probe: Probe,
    target: float,
    memory_exponent: int,
    bounds: ScryptBounds | None = None,
) -> Recommendation:
    """Tune scrypt memory and operation limits for ``target`` seconds.

    Shrinking re-derives the operation limit from memory; growing doubles
    the operation limit alone.
    """

    bounds = bounds or ScryptBounds()
    logger.info("Beginning automatic optimal scrypt benchmark ...")
    memory = _clamp_memory(
        Family.SCRYPT, memory_exponent, bounds.memory_min, bounds.memory_max
    )

    def shrink(params: ScryptParameters) -> ScryptParameters | None:
        if params.memory_exponent <= bounds.memory_min:
            return None
        return ScryptParameters.for_memory(params.memory_exponent - 1)

    def grow(params: ScryptParameters) -> ScryptParameters | None:
        doubled = params.operation_limit * 2
        if doubled > bounds.operations_max:
            return None
        return replace(params, operation_limit=doubled)

    plan = SearchPlan(_prober(Family.SCRYPT, probe), shrink, grow)
    outcome = search(plan, ScryptParameters.for_memory(memory), target)
    _soft_stop(Family.SCRYPT, outcome)
    return Recommendation(
        Family.SCRYPT, outcome.parameters, outcome.elapsed, target, outcome.target_met
    )


def estimate_iterations(
    reference: int, baseline: float, target: float, minimum: int
) -> int:
    """Extrapolate an iteration count from one reference measurement.

    Args:
        reference: Iteration count the baseline was measured at.
        baseline: Elapsed seconds at ``reference``.
        target: Time budget in seconds.
        minimum: Lowest permissible iteration count.

    Returns:
        int: Estimate rounded down to a multiple of 1000, never above
        ``reference`` and never below ``minimum``.
    """

    if baseline <= 0 or target >= baseline:
        return reference
    iterations = int(reference * (target / baseline))
    iterations -= iterations % PBKDF2_ITERATION_STEP
    iterations = min(reference, iterations)
    return max(minimum, iterations)


def tune_pbkdf2(
    probe: Probe, target: float, bounds: Pbkdf2Bounds | None = None
) -> Recommendation:
    """Pick the faster PBKDF2 digest and tune its iteration count.

    Both digests are timed at ``bounds.reference`` iterations; SHA2-256 is
    chosen only when strictly faster. The count is extrapolated linearly
    from that baseline and then lowered in steps of 1000 while too slow.

    Args:
        probe: PBKDF2 probe.
        target: Time budget in seconds.
        bounds: Parameter bounds, defaults to :func:`default_pbkdf2_bounds`.

    Returns:
        Recommendation: Final PBKDF2 parameters.
    """

    bounds = bounds or default_pbkdf2_bounds()
    logger.info("Beginning automatic optimal PBKDF2 benchmark ...")
    logger.info("This does not test SHA1; only SHA2-512 and SHA2-256 are timed.")
    logger.info(
        "If SASL SCRAM logins are supported, the SCRAM parameter advice "
        "takes precedence over these results."
    )
    measure = _prober(Family.PBKDF2, probe)
    reference = bounds.reference

    elapsed_sha512 = measure(Pbkdf2Parameters(Digest.SHA512, reference))
    elapsed_sha256 = measure(Pbkdf2Parameters(Digest.SHA256, reference))
    if elapsed_sha256 < elapsed_sha512:
        digest, baseline = Digest.SHA256, elapsed_sha256
    else:
        digest, baseline = Digest.SHA512, elapsed_sha512
    logger.info("Selected %s (%.6fs at %d iterations)", digest.value, baseline, reference)

    iterations = estimate_iterations(reference, baseline, target, bounds.iterations_min)

    def shrink(params: Pbkdf2Parameters) -> Pbkdf2Parameters | None:
        if params.iterations <= bounds.iterations_min:
            return None
        lowered = max(bounds.iterations_min, params.iterations - PBKDF2_ITERATION_STEP)
        return replace(params, iterations=lowered)

    plan = SearchPlan(measure, shrink)
    outcome = search(plan, Pbkdf2Parameters(digest, iterations), target)
    _soft_stop(Family.PBKDF2, outcome)
    return Recommendation(
        Family.PBKDF2, outcome.parameters, outcome.elapsed, target, outcome.target_met
    )


def validate_target(target: float) -> float:
    """Return ``target`` as float after checking it is a usable budget.

    Raises:
        ValueError: If ``target`` is not a positive finite number.
    """

    try:
        value = float(target)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"target must be a number, got {target!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"target must be a positive number of seconds, got {target!r}")
    return value


def _select_families(families: Iterable[Family | str] | None) -> list[Family]:
    if families is None:
        return list(FAMILY_ORDER)
    wanted = {Family(family) for family in families}
    return [family for family in FAMILY_ORDER if family in wanted]


def run_optimal_benchmarks(
    target: float,
    memory_exponent: int | None = None,
    probes: ProbeSet | None = None,
    bounds: TuningBounds | None = None,
    families: Iterable[Family | str] | None = None,
    on_recommendation: Callable[[Recommendation], None] | None = None,
) -> BenchmarkRun:
    """Tune every selected family in the order argon2, scrypt, pbkdf2.

    Args:
        target: Time budget in seconds for a single hash.
        memory_exponent: Memory ceiling for the memory-hard families as a
            KiB power of two. ``None`` logs a warning and uses
            ``DEFAULT_MEMORY_EXPONENT``.
        probes: Probes to time with, defaults to the local hash primitives.
        bounds: Parameter bounds, defaults to :class:`TuningBounds`.
        families: Optional subset of families; order stays fixed.
        on_recommendation: Called with each recommendation once final.

    Returns:
        BenchmarkRun: Recommendations for the families that finished. On a
        probe failure ``error`` holds the message and later families are
        skipped.

    Raises:
        ValueError: If ``target`` is not positive; no probe is run.
    """

    target = validate_target(target)
    selected = _select_families(families)
    bounds = bounds or TuningBounds()
    if probes is None:
        from .probes import local_probes

        probes = local_probes()

    memory_hard = Family.ARGON2 in selected or Family.SCRYPT in selected
    if memory_exponent is None:
        if memory_hard:
            logger.warning(
                "Be sure to specify the memory limit appropriately for this "
                "machine! Using 2^%d KiB.",
                DEFAULT_MEMORY_EXPONENT,
            )
        memory_exponent = DEFAULT_MEMORY_EXPONENT

    run = BenchmarkRun()
    for family in selected:
        try:
            if family is Family.ARGON2:
                rec = tune_argon2(probes.argon2, target, memory_exponent, bounds.argon2)
            elif family is Family.SCRYPT:
                rec = tune_scrypt(probes.scrypt, target, memory_exponent, bounds.scrypt)
            else:
                rec = tune_pbkdf2(probes.pbkdf2, target, bounds.pbkdf2)
        except ProbeError as exc:
            logger.error("%s benchmark failed: %s", family.value, exc)
            run.error = str(exc)
            return run
        run.recommendations.append(rec)
        if on_recommendation is not None:
            on_recommendation(rec)

    for family in run.unmet:
        logger.warning("%s could not meet the %.6fs target.", family.value, target)
    return run
