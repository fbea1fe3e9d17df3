"""Unit tests for the provisioning patches."""

from __future__ import annotations

import struct

import pytest

from dlogtables.table import (
    REFERENCE_INTERNATIONAL_RATES,
    CoinEntry,
    CoinType,
    DecodedTable,
    SelectorClass,
    TableId,
    apply_coin_provisioning,
    decode_table,
    encode_table,
    replace_international_rates,
)

# =============================================================================
# Test Constants - Duplicated from src for test isolation
# =============================================================================

TEST_COIN_PARAM = 0x03
TEST_INTL_MAX_ENTRIES = 200

TEST_PROVISIONED_COINS = {
    # coin type: (value, volume, param), None = left as found
    CoinType.US_DOLLAR: (100, 40, TEST_COIN_PARAM),
    CoinType.CDN_STEEL_NICKEL: (5, 20, TEST_COIN_PARAM),
    CoinType.CDN_STEEL_DIME: (10, 10, TEST_COIN_PARAM),
    CoinType.CDN_STEEL_QUARTER: (25, 25, TEST_COIN_PARAM),
    CoinType.CDN_DOLLAR2: (100, 40, TEST_COIN_PARAM),
}

TEST_PARAM_ONLY_COINS = [
    CoinType.CDN_NICKEL,
    CoinType.CDN_NICKEL2,
    CoinType.CDN_DIME,
    CoinType.CDN_QUARTER,
    CoinType.CDN_DOLLAR,
]

TEST_UNTOUCHED_COINS = [
    CoinType.US_NICKEL,
    CoinType.US_DIME,
    CoinType.US_QUARTER,
    CoinType.COIN_13,
    CoinType.COIN_15,
    CoinType.COIN_16,
]

# =============================================================================
# Coin Provisioning
# =============================================================================


class TestCoinProvisioning:
    """Tests for apply_coin_provisioning."""

    def _coins(self, table: DecodedTable) -> dict[CoinType, CoinEntry]:
        return {entry.coin_type: entry for _, entry in table.entries("coins")}  # type: ignore[union-attr]

    def test_us_dollar_scenario(self, coin_table_bytes: bytes) -> None:
        table = decode_table(TableId.COIN_VALIDATION, coin_table_bytes)

        apply_coin_provisioning(table)

        us_dollar = self._coins(table)[CoinType.US_DOLLAR]
        assert (us_dollar.value, us_dollar.volume, us_dollar.param) == (100, 40, 3)

        data = encode_table(table)
        assert struct.unpack_from("<H", data, 8 * 2)[0] == 100
        assert struct.unpack_from("<H", data, 32 + 8 * 2)[0] == 40
        assert data[64 + 8] == 3

    @pytest.mark.parametrize("coin_type", list(TEST_PROVISIONED_COINS), ids=lambda c: c.name)
    def test_full_overrides(self, coin_type: CoinType) -> None:
        table = DecodedTable.blank(TableId.COIN_VALIDATION)

        apply_coin_provisioning(table)

        entry = self._coins(table)[coin_type]
        assert (entry.value, entry.volume, entry.param) == TEST_PROVISIONED_COINS[coin_type]

    @pytest.mark.parametrize("coin_type", TEST_PARAM_ONLY_COINS, ids=lambda c: c.name)
    def test_param_only(self, coin_type: CoinType, coin_table_bytes: bytes) -> None:
        table = decode_table(TableId.COIN_VALIDATION, coin_table_bytes)
        before = self._coins(table)[coin_type]

        apply_coin_provisioning(table)

        after = self._coins(table)[coin_type]
        assert after.param == TEST_COIN_PARAM
        assert (after.value, after.volume) == (before.value, before.volume)

    @pytest.mark.parametrize("coin_type", TEST_UNTOUCHED_COINS, ids=lambda c: c.name)
    def test_other_coins_untouched(self, coin_type: CoinType) -> None:
        table = DecodedTable.blank(TableId.COIN_VALIDATION)

        apply_coin_provisioning(table)

        assert self._coins(table)[coin_type].is_sentinel

    def test_thresholds_untouched(self, coin_table_bytes: bytes) -> None:
        table = decode_table(TableId.COIN_VALIDATION, coin_table_bytes)

        apply_coin_provisioning(table)

        assert encode_table(table)[80:] == coin_table_bytes[80:]

    def test_matches_fresh_decode(self, coin_table_bytes: bytes) -> None:
        table = decode_table(TableId.COIN_VALIDATION, coin_table_bytes)

        apply_coin_provisioning(table)

        assert decode_table(TableId.COIN_VALIDATION, encode_table(table)) == table

    def test_idempotent(self, coin_table_bytes: bytes) -> None:
        table = decode_table(TableId.COIN_VALIDATION, coin_table_bytes)

        apply_coin_provisioning(table)
        once = encode_table(table)
        apply_coin_provisioning(table)

        assert encode_table(table) == once

    def test_wrong_table(self, rate_table_bytes: bytes) -> None:
        with pytest.raises(ValueError, match="COINVL"):
            apply_coin_provisioning(decode_table(TableId.RATE, rate_table_bytes))


# =============================================================================
# International Rate Replacement
# =============================================================================


class TestReplaceInternationalRates:
    """Tests for replace_international_rates."""

    def test_reference_scenario(self, intl_table_bytes: bytes) -> None:
        table = decode_table(TableId.INTL_SBR, intl_table_bytes)

        replace_international_rates(table)

        entries = table.entries("entries")

        assert [(slot, e.calling_code, int(e.selector)) for slot, e in entries] == [
            (0, 44, 6),
            (1, 7, 7),
            (2, 850, 1),
            (3, 98, 1),
            (4, 218, 1),
            (5, 249, 1),
            (6, 963, 1),
            (7, 43, 0),
        ]
        assert sum(1 for e in table.arrays["entries"] if e.is_sentinel) == TEST_INTL_MAX_ENTRIES - 8

    def test_reference_list_classification(self) -> None:
        kinds = [selector.kind for _, selector in REFERENCE_INTERNATIONAL_RATES]
        assert kinds.count(SelectorClass.BLOCKED) == 5
        assert kinds[-1] is SelectorClass.NCC_RATED

    def test_encoded_bytes(self) -> None:
        table = DecodedTable.blank(TableId.INTL_SBR)

        replace_international_rates(table)

        data = encode_table(table)
        assert data[3:9] == bytes([44, 0, 6, 7, 0, 7])
        assert data[3 + 8 * 3 :] == bytes((TEST_INTL_MAX_ENTRIES - 8) * 3)

    def test_header_fields_untouched(self, intl_table_bytes: bytes) -> None:
        table = decode_table(TableId.INTL_SBR, intl_table_bytes)

        replace_international_rates(table)

        assert encode_table(table)[:3] == intl_table_bytes[:3]

    def test_custom_list(self) -> None:
        table = DecodedTable.blank(TableId.INTL_SBR)

        replace_international_rates(table, [(353, 3)])

        ((slot, entry),) = table.entries("entries")
        assert slot == 0
        assert entry.selector.rate_index == 1

    def test_empty_list_clears(self, intl_table_bytes: bytes) -> None:
        table = decode_table(TableId.INTL_SBR, intl_table_bytes)

        replace_international_rates(table, [])

        assert table.entries("entries") == []

    def test_full_list(self) -> None:
        table = DecodedTable.blank(TableId.INTL_SBR)

        replace_international_rates(table, [(code, 0) for code in range(1, TEST_INTL_MAX_ENTRIES + 1)])

        assert len(table.entries("entries")) == TEST_INTL_MAX_ENTRIES

    def test_too_many_entries(self) -> None:
        table = DecodedTable.blank(TableId.INTL_SBR)

        with pytest.raises(ValueError, match="exceed"):
            replace_international_rates(table, [(code, 0) for code in range(1, TEST_INTL_MAX_ENTRIES + 2)])

    @pytest.mark.parametrize("calling_code", [0, 0x10000], ids=["zero", "too_wide"])
    def test_invalid_calling_code(self, calling_code: int) -> None:
        table = DecodedTable.blank(TableId.INTL_SBR)

        with pytest.raises(ValueError, match="Calling code"):
            replace_international_rates(table, [(44, 6), (calling_code, 1)])

        assert table.entries("entries") == []

    def test_invalid_selector(self) -> None:
        table = DecodedTable.blank(TableId.INTL_SBR)

        with pytest.raises(ValueError, match="one byte"):
            replace_international_rates(table, [(44, 256)])

    def test_idempotent(self, intl_table_bytes: bytes) -> None:
        table = decode_table(TableId.INTL_SBR, intl_table_bytes)

        replace_international_rates(table)
        once = encode_table(table)
        replace_international_rates(table)

        assert encode_table(table) == once

    def test_wrong_table(self, coin_table_bytes: bytes) -> None:
        with pytest.raises(ValueError, match="INTL_SBR"):
            replace_international_rates(decode_table(TableId.COIN_VALIDATION, coin_table_bytes))
