from __future__ import annotations


def format_quota(quota: int, *, quota_per_unit: float, display_in_currency: bool) -> str:
    if display_in_currency:
        return f"${quota / quota_per_unit:.6f} quota"
    return f"{quota} quota points"
