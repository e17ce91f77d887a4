import json

from kdf_tune import (
    Argon2Parameters,
    Digest,
    Family,
    Pbkdf2Parameters,
    Recommendation,
    ScryptParameters,
    render_config,
    render_json,
)


def test_render_argon2_block():
    rec = Recommendation(
        Family.ARGON2, Argon2Parameters(16, 3), elapsed=0.2431, target=0.25
    )
    assert render_config(rec) == (
        "crypto {\n"
        "\t/* Target: 0.250000s; Benchmarked: 0.243100s */\n"
        '\targon2_type = "argon2id";\n'
        "\targon2_memcost = 16; /* 65536 KiB */\n"
        "\targon2_timecost = 3;\n"
        "\targon2_threads = 1;\n"
        "};"
    )


def test_render_scrypt_block():
    rec = Recommendation(
        Family.SCRYPT, ScryptParameters(18, 2**24), elapsed=0.2, target=0.25
    )
    text = render_config(rec)
    assert "\tscrypt_memlimit = 18; /* 262144 KiB */\n" in text
    assert "\tscrypt_opslimit = 16777216;\n" in text


def test_render_pbkdf2_block_marks_unmet_target():
    rec = Recommendation(
        Family.PBKDF2,
        Pbkdf2Parameters(Digest.SHA256, 10_000),
        elapsed=1.5,
        target=0.25,
        target_met=False,
    )
    text = render_config(rec)
    assert "target not met" in text
    assert '\tpbkdf2v2_digest = "SHA2-256";\n' in text
    assert "\tpbkdf2v2_rounds = 10000;\n" in text


def test_render_json():
    rec = Recommendation(
        Family.PBKDF2, Pbkdf2Parameters(Digest.SHA512, 64_000), elapsed=0.2, target=0.25
    )
    assert json.loads(render_json(rec)) == {
        "family": "pbkdf2",
        "parameters": {"digest": "SHA2-512", "iterations": 64000},
        "elapsed": 0.2,
        "target": 0.25,
        "target_met": True,
    }
