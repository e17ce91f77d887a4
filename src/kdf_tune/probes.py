"""Timed hash computations backing the tuner.

Each probe hashes a fixed password once with the parameters it is given and
reports how long that took. Failures of the underlying primitive are logged
and returned as unsuccessful :class:`~kdf_tune.core.ProbeResult` values so
the search can abort the run.
"""

import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from .constants import DEFAULT_MEMORY_EXPONENT
from .core import (
    Argon2Parameters,
    Pbkdf2Parameters,
    ProbeResult,
    ProbeSet,
    ScryptParameters,
)

logger = logging.getLogger(__name__)

BENCHMARK_PASSWORD = b"kdf-tune benchmark password"
BENCHMARK_SALT = b"\x00" * 16
HASH_LEN = 32

SCRYPT_BLOCK_SIZE = 8
_SCRYPT_MAX_RP = 0x3FFFFFFF
_SCRYPT_MIN_OPSLIMIT = 32768

_warmed_up = False
_warm_up_lock = threading.Lock()


def _warm_up() -> None:
    """Hash once at the default benchmark memory size before timing anything.

    Returns:
        None
    """
    global _warmed_up
    if _warmed_up:
        return
    with _warm_up_lock:
        if _warmed_up:
            return
        hash_secret_raw(
            BENCHMARK_PASSWORD,
            BENCHMARK_SALT,
            time_cost=1,
            memory_cost=1 << DEFAULT_MEMORY_EXPONENT,
            parallelism=1,
            hash_len=HASH_LEN,
            type=Type.ID,
        )
        _warmed_up = True


def warm_up() -> None:
    """Public wrapper enabling explicit warm-up."""

    _warm_up()


def _timed(label: str, compute: Callable[[], bytes]) -> ProbeResult:
    start = time.perf_counter()
    try:
        compute()
    except (HashingError, MemoryError, ValueError) as exc:
        logger.error("%s computation failed: %s", label, exc)
        return ProbeResult(elapsed=0.0, ok=False, error=str(exc) or type(exc).__name__)
    return ProbeResult(elapsed=time.perf_counter() - start)


@dataclass
class Argon2Probe:
    """Probe hashing with Argon2id via ``argon2-cffi``."""

    def run(self, params: Argon2Parameters) -> ProbeResult:
        """Return time taken by one Argon2id hash.

        Args:
            params: Memory exponent, time cost and thread count.

        Returns:
            ProbeResult: Elapsed seconds, or a failed result when
            ``argon2`` rejects the parameters.
        """

        return _timed(
            "argon2id",
            lambda: hash_secret_raw(
                BENCHMARK_PASSWORD,
                BENCHMARK_SALT,
                time_cost=params.time_cost,
                memory_cost=params.memory_kib,
                parallelism=params.threads,
                hash_len=HASH_LEN,
                type=Type.ID,
            ),
        )


def _fit_log2(max_n: int) -> int:
    n_log2 = 1
    while n_log2 < 63 and (1 << n_log2) <= max_n // 2:
        n_log2 += 1
    return n_log2


def scrypt_cost(params: ScryptParameters) -> tuple[int, int, int]:
    """Translate memory and operation limits into scrypt ``(n, r, p)``.

    Follows libsodium's parameter picking: the block size is fixed at 8,
    ``n`` fills the memory limit and the remaining operation budget is
    spent on parallelism.

    Args:
        params: Memory exponent in KiB and operation limit.

    Returns:
        tuple[int, int, int]: CPU/memory cost, block size, parallelism.
    """

    memlimit = params.memory_kib * 1024
    opslimit = max(params.operation_limit, _SCRYPT_MIN_OPSLIMIT)
    r = SCRYPT_BLOCK_SIZE
    if opslimit < memlimit // 32:
        p = 1
        n_log2 = _fit_log2(opslimit // (r * 4))
    else:
        n_log2 = _fit_log2(memlimit // (r * 128))
        max_rp = min((opslimit // 4) // (1 << n_log2), _SCRYPT_MAX_RP)
        p = max(1, max_rp // r)
    return 1 << n_log2, r, p


@dataclass
class ScryptProbe:
    """Probe hashing with ``hashlib.scrypt``."""

    def run(self, params: ScryptParameters) -> ProbeResult:
        n, r, p = scrypt_cost(params)
        # OpenSSL needs 128 * r * (n + p + 2) bytes of working memory
        maxmem = 128 * r * (n + p + 2) + 1024 * 1024
        return _timed(
            "scrypt",
            lambda: hashlib.scrypt(
                BENCHMARK_PASSWORD,
                salt=BENCHMARK_SALT,
                n=n,
                r=r,
                p=p,
                maxmem=maxmem,
                dklen=HASH_LEN,
            ),
        )


@dataclass
class Pbkdf2Probe:
    """Probe hashing with ``hashlib.pbkdf2_hmac``."""

    def run(self, params: Pbkdf2Parameters) -> ProbeResult:
        return _timed(
            f"pbkdf2-{params.digest.hashlib_name}",
            lambda: hashlib.pbkdf2_hmac(
                params.digest.hashlib_name,
                BENCHMARK_PASSWORD,
                BENCHMARK_SALT,
                params.iterations,
            ),
        )


def local_probes() -> ProbeSet:
    """Return probes timing the hash primitives on this machine."""

    return ProbeSet(argon2=Argon2Probe(), scrypt=ScryptProbe(), pbkdf2=Pbkdf2Probe())
