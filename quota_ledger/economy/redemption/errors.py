class RedemptionError(Exception):
    code = "E_REDEMPTION_FAILED"
    message = "Redemption failed."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class RedemptionInvalidInputError(RedemptionError):
    code = "E_REDEMPTION_INVALID_INPUT"
    message = "A redemption code and a valid user id are required."


class RedemptionNotFoundError(RedemptionError):
    code = "E_REDEMPTION_NOT_FOUND"
    message = "Invalid redemption code."


class RedemptionUserNotFoundError(RedemptionError):
    code = "E_REDEMPTION_USER_NOT_FOUND"
    message = "User does not exist."


class RedemptionAlreadyUsedError(RedemptionError):
    code = "E_REDEMPTION_ALREADY_USED"
    message = "This redemption code has already been used."


class RedemptionDisabledError(RedemptionError):
    code = "E_REDEMPTION_DISABLED"
    message = "This gift code has been disabled."


class RedemptionExpiredError(RedemptionError):
    code = "E_REDEMPTION_EXPIRED"
    message = "This redemption code has expired."


class RedemptionMaxUsersReachedError(RedemptionError):
    code = "E_REDEMPTION_MAX_USERS_REACHED"
    message = "This gift code has reached its maximum number of users."


class RedemptionPerUserLimitReachedError(RedemptionError):
    code = "E_REDEMPTION_PER_USER_LIMIT_REACHED"
    message = "You have reached the maximum uses of this gift code."


class RedemptionUnknownKindError(RedemptionError):
    code = "E_REDEMPTION_UNKNOWN_KIND"
    message = "Unknown redemption code type."


class RedemptionStorageError(RedemptionError):
    code = "E_REDEMPTION_STORAGE"
    message = "Redemption could not be stored, please try again."
