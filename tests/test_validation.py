import pytest

from market_health.errors import MarketValidationError
from market_health.validation import is_valid_market_id, parse_market_list, validate_market_id

HEX_ID = "0x" + "0123456789abcdef" * 4


def test_accepts_hex_and_ticker_identifiers() -> None:
    assert is_valid_market_id(HEX_ID)
    assert is_valid_market_id(HEX_ID.replace("abcdef", "ABCDEF"))
    assert is_valid_market_id("INJ-USDT")
    assert is_valid_market_id("inj-usdt")


@pytest.mark.parametrize(
    "value",
    ["", "INJ/USDT", "INJUSDT", "0x1234", HEX_ID + "0", "INJ-USDT-PERP", "0x" + "g" * 64],
)
def test_rejects_malformed_identifiers(value: str) -> None:
    with pytest.raises(MarketValidationError):
        validate_market_id(value)


def test_validate_trims_whitespace() -> None:
    assert validate_market_id("  INJ-USDT ") == "INJ-USDT"


def test_rejects_non_string() -> None:
    with pytest.raises(MarketValidationError):
        validate_market_id(42)


def test_parse_market_list_from_comma_string() -> None:
    assert parse_market_list("INJ-USDT, ATOM-USDT,,") == ["INJ-USDT", "ATOM-USDT"]


def test_parse_market_list_bounds() -> None:
    assert len(parse_market_list(["A-B", "C-D", "E-F", "G-H", "I-J"])) == 5

    with pytest.raises(MarketValidationError):
        parse_market_list(["INJ-USDT"])
    with pytest.raises(MarketValidationError):
        parse_market_list(["A-B", "C-D", "E-F", "G-H", "I-J", "K-L"])
    with pytest.raises(MarketValidationError):
        parse_market_list("")
