"""
Submission state machine.

    draft -> awaiting_pro -> awaiting_leader -> awaiting_pro_to_post -> posted
    awaiting_pro -> posted              (direct, no approval)
    awaiting_leader -> rejected

Every event has a guard that must pass before the transition is even
considered, and every transition that hands work to another role issues a
fresh one-time code for that role and emails it.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from auth.guards import check_resource_access, require_role
from auth.security_logger import SecurityEvent, SecurityLogger
from auth.service import AuthService, DispatchResult
from auth.types import Role, Session
from clients.postgres_client import StoreError
from core.exceptions import InvalidTransitionError, SubmissionNotFoundError
from core.models import Submission, SubmissionStatus
from core.services.submission_service import SubmissionService
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class SubmissionEvent(str, Enum):
    """Actions that move a submission."""

    MARK_READY = "mark_ready"
    SEND_FOR_APPROVAL = "send_for_approval"
    POST_DIRECTLY = "post_directly"
    APPROVE = "approve"
    REJECT = "reject"
    POST_APPROVED = "post_approved"


TRANSITIONS: dict[tuple[SubmissionStatus, SubmissionEvent], SubmissionStatus] = {
    (SubmissionStatus.DRAFT, SubmissionEvent.MARK_READY): SubmissionStatus.AWAITING_PRO,
    (SubmissionStatus.AWAITING_PRO, SubmissionEvent.SEND_FOR_APPROVAL): SubmissionStatus.AWAITING_LEADER,
    (SubmissionStatus.AWAITING_PRO, SubmissionEvent.POST_DIRECTLY): SubmissionStatus.POSTED,
    (SubmissionStatus.AWAITING_LEADER, SubmissionEvent.APPROVE): SubmissionStatus.AWAITING_PRO_TO_POST,
    (SubmissionStatus.AWAITING_LEADER, SubmissionEvent.REJECT): SubmissionStatus.REJECTED,
    (SubmissionStatus.AWAITING_PRO_TO_POST, SubmissionEvent.POST_APPROVED): SubmissionStatus.POSTED,
}


def next_status(current: SubmissionStatus, event: SubmissionEvent) -> SubmissionStatus:
    """Target status for event, or InvalidTransitionError."""
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(current, event) from None


def post_event_for(current: SubmissionStatus) -> SubmissionEvent:
    """Which posting event applies: direct from awaiting_pro, otherwise the approved path."""
    if current == SubmissionStatus.AWAITING_PRO:
        return SubmissionEvent.POST_DIRECTLY
    return SubmissionEvent.POST_APPROVED


@dataclass
class TransitionResult:
    """Committed transition plus the outcome of notifying the next actor."""

    submission: Submission
    notification: DispatchResult | None = None

    @property
    def notified(self) -> bool:
        """True when no notification was due, or every recipient got one."""
        return self.notification is None or self.notification.notified


class SubmissionWorkflow:
    """Guarded transitions over stored submissions."""

    def __init__(
        self,
        submissions: SubmissionService,
        auth_service: AuthService,
        security_logger: SecurityLogger,
        app_name: str = "DMRT Social Media",
    ):
        self.submissions = submissions
        self.auth_service = auth_service
        self.security_logger = security_logger
        self.app_name = app_name

    def _load(self, submission_id: str) -> Submission:
        submission = self.submissions.get_by_id(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    def _apply(
        self,
        session: Session,
        submission: Submission,
        event: SubmissionEvent,
        extra: dict | None = None,
    ) -> Submission:
        """Validate and persist one transition; losing a race is an invalid transition."""
        target = next_status(submission.status, event)
        updated = self.submissions.update_status(submission.id, submission.status, target, extra)
        return self._committed(session, submission, event, updated)

    def _committed(
        self,
        session: Session,
        submission: Submission,
        event: SubmissionEvent,
        updated: Submission | None,
    ) -> Submission:
        """Turn a lost conditional write into InvalidTransitionError, audit a won one."""
        if updated is None:
            current = self._load(submission.id)
            raise InvalidTransitionError(current.status, event)

        # The status change has committed; a failed audit write is logged, not raised
        try:
            self.security_logger.log(
                SecurityEvent.SUBMISSION_TRANSITION,
                email=session.email,
                role=session.role,
                details={
                    "submission_id": submission.id,
                    "event": event.value,
                    "from": submission.status.value,
                    "to": updated.status.value,
                },
            )
        except StoreError as e:
            logger.error(f"Could not audit transition of submission {submission.id}: {e}")

        logger.info(f"Submission {submission.id}: {submission.status.value} -> {updated.status.value}")
        return updated

    def _notify(self, role: Role, subject: str, submission_id: str | None = None) -> DispatchResult:
        return self.auth_service.dispatch_link(
            role,
            f"{self.app_name} - {subject}",
            submission_id=submission_id,
        )

    def mark_ready(self, session: Session | None, submission_id: str) -> TransitionResult:
        """Owner hands a draft to the PRO."""
        submission = self._load(submission_id)
        session = check_resource_access(
            session, submission.submitted_by_email, allow_pro=False, allow_leader=False
        )
        updated = self._apply(session, submission, SubmissionEvent.MARK_READY)
        notification = self._notify(Role.PRO, "New Post Ready for Review")
        return TransitionResult(updated, notification)

    def send_for_approval(
        self,
        session: Session | None,
        submission_id: str,
        edited_post_text: str | None = None,
    ) -> TransitionResult:
        """PRO asks the leaders to approve, optionally with edited text."""
        session = require_role(session, Role.PRO)
        submission = self._load(submission_id)
        extra = {"edited_by_pro": edited_post_text} if edited_post_text else None
        updated = self._apply(session, submission, SubmissionEvent.SEND_FOR_APPROVAL, extra)
        notification = self._notify(
            Role.LEADER, "Post Awaiting Your Approval", submission_id=submission.id
        )
        return TransitionResult(updated, notification)

    def decide(
        self,
        session: Session | None,
        submission_id: str,
        approved: bool,
        comment: str | None = None,
    ) -> TransitionResult:
        """Leader approves or rejects; the PRO is told either way."""
        session = require_role(session, Role.LEADER)
        submission = self._load(submission_id)
        event = SubmissionEvent.APPROVE if approved else SubmissionEvent.REJECT
        target = next_status(submission.status, event)
        updated = self.submissions.record_leader_approval(
            submission.id, submission.status, target, approved, comment
        )
        updated = self._committed(session, submission, event, updated)

        subject = "Post Approved - Ready to Post" if approved else "Post Rejected"
        notification = self._notify(Role.PRO, subject)
        return TransitionResult(updated, notification)

    def post(self, session: Session | None, submission_id: str) -> TransitionResult:
        """
        PRO marks the post as published.

        Works from awaiting_pro (no approval needed) or
        awaiting_pro_to_post (after approval). The platform calls
        themselves happen outside this workflow.

        Raises:
            ValueError: If there is no post text to publish
        """
        session = require_role(session, Role.PRO)
        submission = self._load(submission_id)
        event = post_event_for(submission.status)
        next_status(submission.status, event)
        if not submission.post_text:
            raise ValueError("No post text available")
        updated = self._apply(session, submission, event, {"posted_at": now_utc()})
        return TransitionResult(updated)
