from __future__ import annotations


class MalformedPrerequisiteError(ValueError):
    """Raw prerequisite data matches no accepted shape, or nests past the depth cap.

    Batch callers catch this per course and fall back to "no prerequisites known".
    """

    def __init__(self, message: str, course_code: str | None = None):
        super().__init__(message)
        self.course_code = course_code

    def __str__(self) -> str:
        msg = super().__str__()
        if self.course_code:
            return f"{self.course_code}: {msg}"
        return msg


class IncompleteContextWarning(UserWarning):
    """A GPA / credit / classification gate could not be checked.

    Never raised: the evaluator collects these on the result so callers can
    show them next to the outcome.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
