from quota_ledger.workers.tasks.redemption_maintenance import (
    run_purge_invalid_codes,
    run_usage_fact_reconciliation,
)

__all__ = [
    "run_purge_invalid_codes",
    "run_usage_fact_reconciliation",
]
