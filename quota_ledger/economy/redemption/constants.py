CODE_KIND_SINGLE = "SINGLE"
CODE_KIND_GIFT = "GIFT"

CODE_STATUS_ENABLED = "ENABLED"
CODE_STATUS_USED = "USED"
CODE_STATUS_DISABLED = "DISABLED"
ADMIN_SETTABLE_STATUSES = (CODE_STATUS_ENABLED, CODE_STATUS_DISABLED)
