import contextlib
import importlib
import io
import json

import pytest

import kdf_tune
from kdf_tune import (
    Argon2Parameters,
    BenchmarkRun,
    Family,
    Recommendation,
)
from kdf_tune.constants import DEFAULT_TARGET_SECONDS, PBKDF2_ITERATIONS_DEFAULT

cli_module = importlib.import_module("kdf_tune.cli")

REC = Recommendation(Family.ARGON2, Argon2Parameters(16, 3), elapsed=0.2, target=0.25)


def _run_cli(argv: list[str]) -> tuple[int, str]:
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        code = cli_module.main(argv)
    return code, buf.getvalue().strip()


@pytest.fixture()
def fake_run(monkeypatch):
    called: dict = {}

    def fake(target, memory_exponent=None, bounds=None, families=None, on_recommendation=None):
        called.update(
            target=target,
            memory_exponent=memory_exponent,
            bounds=bounds,
            families=families,
        )
        on_recommendation(REC)
        return BenchmarkRun(recommendations=[REC], error=called.get("error"))

    monkeypatch.setattr(cli_module, "run_optimal_benchmarks", fake)
    return called


def test_cli_prints_config_block(fake_run):
    code, out = _run_cli(["-c", "0.5", "-L", "18"])
    assert code == 0
    assert out.startswith("crypto {")
    assert "argon2_timecost = 3;" in out
    assert fake_run["target"] == 0.5
    assert fake_run["memory_exponent"] == 18
    assert fake_run["families"] is None


def test_cli_defaults(fake_run):
    _run_cli([])
    assert fake_run["target"] == DEFAULT_TARGET_SECONDS
    assert fake_run["memory_exponent"] is None


def test_cli_json_output(fake_run):
    code, out = _run_cli(["--json"])
    assert code == 0
    assert json.loads(out)["parameters"]["time_cost"] == 3


def test_cli_family_selection(fake_run):
    _run_cli(["--family", "scrypt", "--family", "pbkdf2"])
    assert fake_run["families"] == ["scrypt", "pbkdf2"]


def test_cli_memory_limit_from_env(fake_run, monkeypatch):
    monkeypatch.setenv("KDF_TUNE_MEMORY_LIMIT", "20")
    _run_cli([])
    assert fake_run["memory_exponent"] == 20


def test_cli_ci_flag(fake_run):
    _run_cli(["--ci"])
    assert fake_run["bounds"].pbkdf2.reference == PBKDF2_ITERATIONS_DEFAULT


def test_cli_failure_exit_code(fake_run, capsys):
    fake_run["error"] = "scrypt probe failed"
    code = cli_module.main([])
    assert code == 1
    assert "Benchmark failed: scrypt probe failed" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [["-c", "0"], ["-c", "-1"], ["-c", "nan"], ["-c", "inf"], ["-L", "0"]],
)
def test_cli_rejects_bad_arguments(argv, fake_run):
    with pytest.raises(SystemExit) as excinfo:
        _run_cli(argv)
    assert excinfo.value.code == 2
    assert "target" not in fake_run


def test_cli_rejects_bad_env(fake_run, monkeypatch):
    monkeypatch.setenv("KDF_TUNE_MEMORY_LIMIT", "lots")
    with pytest.raises(SystemExit):
        _run_cli([])
    assert "target" not in fake_run


def test_cli_warm_up_env(fake_run, monkeypatch):
    warmed = []
    monkeypatch.setattr(cli_module, "warm_up", lambda: warmed.append(True))
    monkeypatch.setenv("KDF_TUNE_WARMUP", "1")
    _run_cli([])
    assert warmed == [True]


def test_cli_version():
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf), pytest.raises(SystemExit):
        cli_module.main(["--version"])
    assert buf.getvalue().strip() == kdf_tune.__version__


def test_cli_real_argon2_run():
    code, out = _run_cli(["--family", "argon2", "-L", "10", "-c", "0.01", "-q"])
    assert code == 0
    assert "argon2_memcost" in out
