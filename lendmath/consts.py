"""Protocol constants, well-known program ids and key helpers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .fraction import Fraction

SLOTS_PER_SECOND = 2
SLOTS_PER_MINUTE = SLOTS_PER_SECOND * 60
SLOTS_PER_HOUR = SLOTS_PER_MINUTE * 60
SLOTS_PER_DAY = SLOTS_PER_HOUR * 24
SLOTS_PER_YEAR = SLOTS_PER_DAY * 365

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = SECONDS_PER_MINUTE * 60
SECONDS_PER_DAY = SECONDS_PER_HOUR * 24

PROGRAM_VERSION = 1
FULL_BPS = 10_000
UNINITIALIZED_VERSION = 0
INITIAL_COLLATERAL_RATIO = 1
LIQUIDATION_CLOSE_FACTOR = 20
LIQUIDATION_CLOSE_VALUE = 2
MAX_LIQUIDATABLE_VALUE_AT_ONCE = 500_000
MIN_AUTODELEVERAGE_BONUS_BPS = 50
NO_DELEVERAGING_MARKER = 255
MAX_OBLIGATION_RESERVES = 20
CLOSE_TO_INSOLVENCY_RISKY_LTV = 95
MIN_INITIAL_DEPOSIT_AMOUNT = 1000
DEFAULT_MIN_DEPOSIT_AMOUNT = 100_000

LENDING_MARKET_SIZE = 4656
RESERVE_SIZE = 8616
OBLIGATION_SIZE = 3336
RESERVE_CONFIG_SIZE = 920
REFERRER_TOKEN_STATE_SIZE = 352
USER_METADATA_SIZE = 1024
REFERRER_STATE_SIZE = 64
SHORT_URL_SIZE = 68
TOKEN_INFO_SIZE = 384

GLOBAL_ALLOWED_BORROW_VALUE = 45_000_000
DEFAULT_BORROW_FACTOR_PCT = 100
ELEVATION_GROUP_NONE = 0
MAX_NUM_ELEVATION_GROUPS = 32
USD_DECIMALS = 6
MIN_NET_VALUE_IN_OBLIGATION = Fraction.from_num(Decimal("0.000001"))
DUST_LAMPORT_THRESHOLD = 1
MAX_PRICE_DECIMALS_U256 = 36
TARGET_PRICE_DECIMALS = MAX_PRICE_DECIMALS_U256 // 2

DEFAULT_PUBKEY = bytes(32)
NULL_PUBKEY = bytes(
    [
        11, 193, 238, 216, 208, 116, 241, 195, 55, 212, 76, 22, 75, 202, 40, 216,
        76, 206, 27, 169, 138, 64, 177, 28, 19, 90, 156, 0, 0, 0, 0, 0,
    ]
)

_POWERS_OF_TEN = tuple(10**i for i in range(20))

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_INDEX = {char: index for index, char in enumerate(_B58_ALPHABET)}


def ten_pow(x: int) -> int:
    """Return 10**x for 0 <= x <= 19 (the range of an unsigned 64-bit integer)."""
    if not 0 <= x <= 19:
        raise ValueError("The exponent must be between 0 and 19.")
    return _POWERS_OF_TEN[x]


def b58decode(text: str) -> bytes:
    """Decode a base58 (Bitcoin alphabet) string."""
    number = 0
    for char in text:
        try:
            digit = _B58_INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base58 character {char!r}") from None
        number = number * 58 + digit
    leading_zeros = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * leading_zeros + body


def _pubkey(text: str) -> bytes:
    key = b58decode(text)
    if len(key) != 32:
        raise ValueError(f"{text} does not decode to a 32-byte key")
    return key


def maybe_null_pk(pubkey: bytes) -> Optional[bytes]:
    """Return None for the default or null key, otherwise the key itself."""
    if pubkey == DEFAULT_PUBKEY or pubkey == NULL_PUBKEY:
        return None
    return pubkey


@dataclass(frozen=True)
class CpiWhitelistedAccount:
    """A program allowed to call in through CPI, with its nesting level."""

    program_id: bytes
    whitelist_level: int


SQUADS_PROGRAM_ID_V3_MAINNET_PROD = _pubkey("SMPLecH534NA9acpos4G6x7uf3LWbCAwZQE9e8ZekMu")
SQUADS_PROGRAM_ID_V3_MAINNET_DEV = _pubkey("84Ue9gKQUsStFJQCNQpsqvbceo7fKYSSCCMXxMZ5PkiW")
SQUADS_PROGRAM_ID_V4_MAINNET_PROD = _pubkey("SQDS4ep65T869zMMBKyuUq6aD6EgTu8psMjkvj52pCf")
SQUADS_PROGRAM_ID_V4_MAINNET_DEV = _pubkey("STAG3xkFMyVK3sRtQhipsKuLpRGbgospDpVdNyJqDpS")
FLEX_LEND_ID_MAINNET_PROD = _pubkey("FL3X2pRsQ9zHENpZSKDRREtccwJuei8yg9fwDu9UN69Q")
KAMINO_VAULT_STAGING = _pubkey("STkvh7ostar39Fwr4uZKASs1RNNuYMFMTsE77FiRsL2")
KAMINO_VAULT_MAINNET = _pubkey("kvauTFR8qm1dhniz6pYuBZkuene3Hfrs1VQhVRgCNrr")
DEFI_CARROT_ID_MAINNET = _pubkey("CarrotwivhMpDnm27EHmRLeQ683Z1PufuqEmBZvD282s")
METEORA_DYNAMIC_POOL_ID_MAINNET = _pubkey("24Uqj9JCLxUeoC3hGfh5W3s9FM9uCHDS2SG3LYwBpyTi")
SANDGLASS_ID_MAINNET = _pubkey("SANDsy8SBzwUE8Zio2mrYZYqL52Phr2WQb9DDKuXMVK")
BESTLEND_ID_MAINNET = _pubkey("bestdGyQeo7mgaSRNgEYdtjhsryNbP8jgg1Y9qoFbk7")
DIVVY_ID_MAINNET = _pubkey("dvyFwAPniptQNb1ey4eM12L8iLHrzdiDsPPDndd6xAR")
EXPONENT_INTEGRATION_ID_MAINNET = _pubkey("XPK1ndTK1xrgRg99ifvdPP1exrx8D1mRXTuxBkkroCx")
EXPONENT_CORE_ID_MAINNET = _pubkey("ExponentnaRg3CQbW6dqQNZKXp7gtZ9DGMp1cwC4HAS7")
AGRO_ID_MAINNET = _pubkey("AgroFiE3bX7j4Tvfa7YAoFLqjjb35Bw6eed5BuYukPEn")
AGRO_STAGING_ID_MAINNET = _pubkey("E7jPY6J5s2uAxAjJQX5tqoASkmFr6TYxVoMm97hPLNZ1")

CPI_WHITELISTED_ACCOUNTS = (
    CpiWhitelistedAccount(FLEX_LEND_ID_MAINNET_PROD, 1),
    CpiWhitelistedAccount(SQUADS_PROGRAM_ID_V3_MAINNET_PROD, 1),
    CpiWhitelistedAccount(SQUADS_PROGRAM_ID_V3_MAINNET_DEV, 1),
    CpiWhitelistedAccount(SQUADS_PROGRAM_ID_V4_MAINNET_PROD, 1),
    CpiWhitelistedAccount(SQUADS_PROGRAM_ID_V4_MAINNET_DEV, 1),
    CpiWhitelistedAccount(METEORA_DYNAMIC_POOL_ID_MAINNET, 1),
    CpiWhitelistedAccount(DEFI_CARROT_ID_MAINNET, 1),
    CpiWhitelistedAccount(SANDGLASS_ID_MAINNET, 1),
    CpiWhitelistedAccount(BESTLEND_ID_MAINNET, 1),
    CpiWhitelistedAccount(KAMINO_VAULT_STAGING, 1),
    CpiWhitelistedAccount(KAMINO_VAULT_MAINNET, 1),
    CpiWhitelistedAccount(DIVVY_ID_MAINNET, 1),
    CpiWhitelistedAccount(EXPONENT_INTEGRATION_ID_MAINNET, 2),
    CpiWhitelistedAccount(EXPONENT_CORE_ID_MAINNET, 3),
    CpiWhitelistedAccount(AGRO_ID_MAINNET, 1),
    CpiWhitelistedAccount(AGRO_STAGING_ID_MAINNET, 1),
)