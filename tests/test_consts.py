import pytest

from lendmath.consts import (
    CPI_WHITELISTED_ACCOUNTS,
    DEFAULT_PUBKEY,
    KAMINO_VAULT_MAINNET,
    NULL_PUBKEY,
    b58decode,
    maybe_null_pk,
    ten_pow,
)


def test_ten_pow_endpoints():
    assert ten_pow(0) == 1
    assert ten_pow(19) == 10_000_000_000_000_000_000


@pytest.mark.parametrize("x", range(19))
def test_ten_pow_steps_by_ten(x):
    assert ten_pow(x + 1) == ten_pow(x) * 10


@pytest.mark.parametrize("x", [20, 50, -1])
def test_ten_pow_out_of_range(x):
    with pytest.raises(ValueError):
        ten_pow(x)


def test_b58decode_all_ones_is_zero_key():
    assert b58decode("1" * 32) == bytes(32)


def test_b58decode_leading_ones_become_zero_bytes():
    assert b58decode("1112") == b"\x00\x00\x00\x01"
    assert b58decode("") == b""


def test_b58decode_rejects_invalid_characters():
    for bad in ("0abc", "Oxyz", "Ilmn", "lmno"):
        with pytest.raises(ValueError):
            b58decode(bad)


def test_whitelisted_program_ids_are_distinct_keys():
    ids = [account.program_id for account in CPI_WHITELISTED_ACCOUNTS]
    assert all(len(program_id) == 32 for program_id in ids)
    assert len(set(ids)) == len(ids)
    assert [maybe_null_pk(program_id) for program_id in ids] == ids


def test_maybe_null_pk():
    assert maybe_null_pk(DEFAULT_PUBKEY) is None
    assert maybe_null_pk(NULL_PUBKEY) is None
    assert maybe_null_pk(KAMINO_VAULT_MAINNET) == KAMINO_VAULT_MAINNET