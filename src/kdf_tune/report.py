"""Render recommendations as configuration blocks."""

import json

from .core import (
    Argon2Parameters,
    Family,
    Pbkdf2Parameters,
    Recommendation,
    ScryptParameters,
)


def _argon2_lines(params: Argon2Parameters) -> list[str]:
    return [
        'argon2_type = "argon2id";',
        f"argon2_memcost = {params.memory_exponent}; /* {params.memory_kib} KiB */",
        f"argon2_timecost = {params.time_cost};",
        f"argon2_threads = {params.threads};",
    ]


def _scrypt_lines(params: ScryptParameters) -> list[str]:
    return [
        f"scrypt_memlimit = {params.memory_exponent}; /* {params.memory_kib} KiB */",
        f"scrypt_opslimit = {params.operation_limit};",
    ]


def _pbkdf2_lines(params: Pbkdf2Parameters) -> list[str]:
    return [
        f'pbkdf2v2_digest = "{params.digest.value}";',
        f"pbkdf2v2_rounds = {params.iterations};",
    ]


_RENDERERS = {
    Family.ARGON2: _argon2_lines,
    Family.SCRYPT: _scrypt_lines,
    Family.PBKDF2: _pbkdf2_lines,
}


def render_config(rec: Recommendation) -> str:
    """Return ``rec`` as a ``crypto { ... };`` configuration block.

    Args:
        rec: Recommendation to render.

    Returns:
        str: Block without a trailing newline.
    """

    lines = [f"/* Target: {rec.target:.6f}s; Benchmarked: {rec.elapsed:.6f}s */"]
    if not rec.target_met:
        lines.append("/* Still too slow at minimum cost; target not met */")
    lines.extend(_RENDERERS[rec.family](rec.parameters))
    body = "\n".join(f"\t{line}" for line in lines)
    return f"crypto {{\n{body}\n}};"


def render_json(rec: Recommendation) -> str:
    """Return ``rec`` as a single-line JSON object."""

    return json.dumps(rec.to_dict(), sort_keys=True)
