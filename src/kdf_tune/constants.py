"""Constant values and environment settings used across the tuner."""

import os

# Boundaries for Argon2 parameters; memory is a KiB power of two
ARGON2_MEMORY_MIN = 3
ARGON2_MEMORY_MAX = 30
ARGON2_TIME_COST_MIN = 1
ARGON2_TIME_COST_MAX = 1_048_576
ARGON2_THREADS = 1

# Boundaries for scrypt parameters; hashlib refuses maxmem above 2 GiB
SCRYPT_MEMORY_MIN = 14
SCRYPT_MEMORY_MAX = 20
SCRYPT_OPERATIONS_MAX = 2**32 - 1
SCRYPT_OPERATIONS_PER_KIB = 32

# Boundaries for PBKDF2 iteration counts
PBKDF2_ITERATIONS_MIN = 10_000
PBKDF2_ITERATIONS_DEFAULT = 64_000
PBKDF2_ITERATIONS_MAX = 5_000_000
PBKDF2_ITERATION_STEP = 1000

DEFAULT_MEMORY_EXPONENT = 16
DEFAULT_TARGET_SECONDS = 0.25

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"", "0", "false", "no", "off"}


def _env_flag(name: str) -> bool:
    """Return boolean value of environment variable ``name``.

    Raises:
        RuntimeError: When the value is not a recognised boolean.
    """

    value = os.getenv(name, "").strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise RuntimeError(f"{name} must be a boolean, got {value!r}")


def in_ci() -> bool:
    """Return ``True`` when ``KDF_TUNE_CI`` asks for lighter benchmarks."""

    return _env_flag("KDF_TUNE_CI")


def warm_up_requested() -> bool:
    """Return ``True`` when ``KDF_TUNE_WARMUP`` is set."""

    return _env_flag("KDF_TUNE_WARMUP")


def pbkdf2_reference() -> int:
    """Return the PBKDF2 iteration count used to pick a digest.

    Returns:
        int: ``PBKDF2_ITERATIONS_DEFAULT`` under CI, else
        ``PBKDF2_ITERATIONS_MAX``.
    """

    return PBKDF2_ITERATIONS_DEFAULT if in_ci() else PBKDF2_ITERATIONS_MAX


def memory_limit_from_env() -> int | None:
    """Return memory exponent from ``KDF_TUNE_MEMORY_LIMIT`` if present.

    Raises:
        RuntimeError: When the value is not an integer.

    Returns:
        int | None: Exponent, or ``None`` when the variable is unset.
    """

    env = os.getenv("KDF_TUNE_MEMORY_LIMIT")
    if env is None or env.strip() == "":
        return None
    try:
        return int(env)
    except ValueError as exc:
        raise RuntimeError("KDF_TUNE_MEMORY_LIMIT must be an integer") from exc
