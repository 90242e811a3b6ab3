"""Workflow errors. Both subclass ValueError so generic handlers still map them."""


class SubmissionNotFoundError(ValueError):
    """No submission with the given id."""

    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(f"Submission {submission_id} not found")


class InvalidTransitionError(ValueError):
    """The submission's current status doesn't allow the requested event."""

    def __init__(self, current, event):
        self.current = current
        self.event = event
        super().__init__(f"Cannot {event.value} a submission in status {current.value}")
