"""Adaptive cost-parameter tuning for password hashes."""

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import re

from .core import (
    Argon2Bounds,
    Argon2Parameters,
    BenchmarkRun,
    Digest,
    Family,
    Pbkdf2Bounds,
    Pbkdf2Parameters,
    ProbeError,
    ProbeResult,
    ProbeSet,
    Recommendation,
    ScryptBounds,
    ScryptParameters,
    TuningBounds,
    run_optimal_benchmarks,
    tune_argon2,
    tune_pbkdf2,
    tune_scrypt,
)
from .probes import local_probes, warm_up
from .report import render_config, render_json
from .testing_probe import SyntheticProbe

_pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"


def _read_version(path: Path) -> str:
    text = path.read_text(encoding="utf-8")
    match = re.search(r'^version\s*=\s*"([^"]+)"', text, flags=re.MULTILINE)
    if not match:
        raise RuntimeError("version not found in pyproject.toml")
    return match.group(1)


try:
    __version__ = version("kdf-tune")
except PackageNotFoundError:
    __version__ = _read_version(_pyproject)

__all__ = [
    "Argon2Bounds",
    "Argon2Parameters",
    "BenchmarkRun",
    "Digest",
    "Family",
    "Pbkdf2Bounds",
    "Pbkdf2Parameters",
    "ProbeError",
    "ProbeResult",
    "ProbeSet",
    "Recommendation",
    "ScryptBounds",
    "ScryptParameters",
    "SyntheticProbe",
    "TuningBounds",
    "local_probes",
    "render_config",
    "render_json",
    "run_optimal_benchmarks",
    "tune_argon2",
    "tune_pbkdf2",
    "tune_scrypt",
    "warm_up",
    "__version__",
]
