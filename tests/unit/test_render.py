"""Unit tests for table reports."""

import pytest

from dlogtables.render import format_timestamp, hex_dump, render_table
from dlogtables.table import DecodedTable, TableId, apply_coin_provisioning, decode_table


class TestHelpers:
    """Tests for timestamp and hex formatting."""

    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            (bytes([120, 10, 18, 13, 5, 9]), "10/18/2020 13:05:09"),
            (bytes([99, 1, 2, 0, 0, 0]), "01/02/1999 00:00:00"),
        ],
        ids=["2020", "1999"],
    )
    def test_format_timestamp(self, data: bytes, expected: str) -> None:
        assert format_timestamp(data) == expected

    def test_hex_dump(self) -> None:
        lines = hex_dump(bytes(range(20)))
        assert lines == [
            "0000: 00 01 02 03 04 05 06 07 08 09 0a 0b 0c 0d 0e 0f",
            "0010: 10 11 12 13",
        ]


class TestRenderTable:
    """Tests for the per-table reports."""

    def test_title(self, rate_table_bytes: bytes) -> None:
        report = render_table(decode_table(TableId.RATE, rate_table_bytes))
        assert report.startswith("Nortel Millennium RATE Table 73 (0x49) Dump\n")

    def test_rate_report(self, rate_table_bytes: bytes) -> None:
        report = render_table(decode_table(TableId.RATE, rate_table_bytes))

        assert "Date: 10/18/2020 13:05:09" in report
        assert "Telco ID: 0x01 (1)" in report
        assert "|   0 (0x00) | 0x08 mm_local" in report
        assert "|   3 (0x03) | 0x09 international" in report
        assert "| 127 (0x7f) | 0x05 toll_intra_lata" in report
        assert report.count("Unlimited") == 2
        assert "  1.50 " in report
        assert "|   1 (0x01) |" not in report

    def test_intl_report(self, intl_table_bytes: bytes) -> None:
        report = render_table(decode_table(TableId.INTL_SBR, intl_table_bytes))

        assert "International Flags: 0x01 (1)" in report
        assert " Default Rate index: 0x02 (2) Rate table 0 (0x00)" in report
        assert "|   0 (0x00) | 0x0001     1 | 0x01 (1)   |" in report
        assert "|   1 (0x01) | 0x0021    33 | BLOCKED    |" in report
        assert "|   2 (0x02) | 0x0031    49 | NCC-rated  |" in report

    def test_coin_report(self, coin_table_bytes: bytes) -> None:
        table = decode_table(TableId.COIN_VALIDATION, coin_table_bytes)
        apply_coin_provisioning(table)

        report = render_table(table)

        assert "|  9 | US Dollar         | 100 |  40 |      3 |" in report
        assert "|  6 | US Nickel         |   0 |   0 |      0 |" in report
        assert "|           Cash Box Volume:     400          |" in report
        assert "|  Cash Box Value Threshold: $123.45          |" in report

    def test_rdlist_report(self, rdlist_table_bytes: bytes) -> None:
        report = render_table(decode_table(TableId.REP_DIAL_LIST, rdlist_table_bytes))

        assert "|  0 | 0x00,0x00,0x00 |      18005551212 | Directory Assistance |" in report
        assert "| Free call            |" in report
        assert "|            611*# |                      |" in report

    def test_featru_report(self, featru_table_bytes: bytes) -> None:
        report = render_table(decode_table(TableId.FEATURE_CONFIG, featru_table_bytes))

        assert "OOS_POTS_flags: 0x80\tELEVEN_DIGIT_LOCAL_CALLS" in report
        assert "incoming_call_mode: 0x02\tRING_DISABLED_ANSWER_DATA" in report
        assert "coin_call_overtime_period: 300 (0x12c)" in report

    def test_warnings_listed(self) -> None:
        data = bytearray(67)
        data[5] = 0x07

        report = render_table(decode_table(TableId.FEATURE_CONFIG, bytes(data)))

        assert "Warning: FEATRU Table 26 (0x1a): unknown classification in incoming_call_mode at offset 5: 7" in report

    def test_blank_rate_table(self) -> None:
        report = render_table(DecodedTable.blank(TableId.RATE))
        assert "Unlimited" not in report
        assert "Date: 00/00/1900 00:00:00" in report
