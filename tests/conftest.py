import pytest

from kdf_tune import (
    Argon2Bounds,
    Digest,
    Pbkdf2Bounds,
    ProbeSet,
    ScryptBounds,
    SyntheticProbe,
    TuningBounds,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("KDF_TUNE_CI", "KDF_TUNE_MEMORY_LIMIT", "KDF_TUNE_WARMUP"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def small_bounds() -> TuningBounds:
    return TuningBounds(
        argon2=Argon2Bounds(memory_min=10, memory_max=24, time_min=1, time_max=64),
        scrypt=ScryptBounds(memory_min=10, memory_max=24, operations_max=2**40),
        pbkdf2=Pbkdf2Bounds(iterations_min=1000, iterations_max=100_000, reference=29_000),
    )


def argon2_model(params) -> float:
    # 0.05s per pass at 2^20 KiB, doubling with each memory step
    return 2 ** (params.memory_exponent - 20) * params.time_cost * 5 / 100


def scrypt_model(params) -> float:
    # one second at 2^25 operations regardless of memory
    return params.operation_limit / 2**25


def pbkdf2_model(params) -> float:
    per_reference = {Digest.SHA512: 2.0, Digest.SHA256: 1.5}[params.digest]
    return per_reference * params.iterations / 29_000


@pytest.fixture()
def synthetic_probes() -> ProbeSet:
    return ProbeSet(
        argon2=SyntheticProbe(argon2_model),
        scrypt=SyntheticProbe(scrypt_model),
        pbkdf2=SyntheticProbe(pbkdf2_model),
    )
