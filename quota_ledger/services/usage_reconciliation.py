from __future__ import annotations


def find_usage_fact_mismatches(
    *,
    uses_by_code: dict[int, int],
    facts_by_code: dict[int, int],
) -> dict[int, int]:
    code_ids = set(uses_by_code) | set(facts_by_code)
    mismatches: dict[int, int] = {}
    for code_id in sorted(code_ids):
        missing_facts = uses_by_code.get(code_id, 0) - facts_by_code.get(code_id, 0)
        if missing_facts != 0:
            mismatches[code_id] = missing_facts
    return mismatches


def reconciliation_status(mismatch_count: int) -> str:
    return "OK" if mismatch_count == 0 else "DIFF"
