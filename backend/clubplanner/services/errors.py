class PlannerError(Exception):
    """Base exception for planner operations"""

    pass


class PlannerValidationError(PlannerError):
    """Input rejected before any document was changed"""

    pass


class UnknownRecordError(PlannerError):
    """Referenced court, player or match does not exist"""

    pass
