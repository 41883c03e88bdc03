"""Scheduling error taxonomy.

Each error carries a ``kind`` so the HTTP layer (and any other caller) can tell
a bad request apart from an unknown link or an already-confirmed schedule.
"""


class SchedulingError(Exception):
    """Base class for all scheduling failures surfaced to callers."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class ScheduleValidationError(SchedulingError):
    """Input rejected before any write."""

    kind = "validation"
    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


class ScheduleNotFoundError(SchedulingError):
    """Unknown vote token, schedule or slot, or a slot from another schedule."""

    kind = "not_found"
    status_code = 404


class ScheduleConflictError(SchedulingError):
    """The schedule is no longer collecting availability."""

    kind = "conflict"
    status_code = 409
