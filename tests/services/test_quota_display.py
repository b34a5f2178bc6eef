from __future__ import annotations

from quota_ledger.services.quota_display import format_quota


def test_format_quota_in_currency_uses_six_decimals() -> None:
    assert format_quota(500_000, quota_per_unit=500_000.0, display_in_currency=True) == "$1.000000 quota"
    assert format_quota(100, quota_per_unit=500_000.0, display_in_currency=True) == "$0.000200 quota"


def test_format_quota_as_points() -> None:
    assert format_quota(1234, quota_per_unit=500_000.0, display_in_currency=False) == "1234 quota points"
