from quota_ledger.db.models.redemption_codes import RedemptionCode
from quota_ledger.db.models.redemption_usages import RedemptionUsage
from quota_ledger.db.models.usage_facts import UsageFact
from quota_ledger.db.models.users import User

__all__ = [
    "RedemptionCode",
    "RedemptionUsage",
    "UsageFact",
    "User",
]
