"""Submission routes - drafts and the approval workflow."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.base import success_response, ErrorCodes
from auth.dependencies import authenticated, current_session, role_at_least
from auth.guards import check_resource_access
from auth.types import Role, Session
from core.exceptions import SubmissionNotFoundError
from core.models import SubmissionCreate, SubmissionStatus
from core.services.submission_service import SubmissionService
from core.workflow import SubmissionWorkflow, TransitionResult


class SendForApprovalRequest(BaseModel):
    edited_post_text: str | None = Field(None, max_length=10000)


class DecisionRequest(BaseModel):
    approved: bool
    comment: str | None = Field(None, max_length=2000)


def _transition_response(result: TransitionResult) -> JSONResponse:
    """200 when everyone was notified, 202 when the move stuck but an email didn't."""
    data = {
        "submission": result.submission.model_dump(mode="json"),
        "notified": result.notified,
    }
    if not result.notified:
        data["warning"] = ErrorCodes.NOTIFICATION_FAILED
        data["unnotified"] = list(result.notification.failed) if result.notification else []
        return JSONResponse(
            status_code=202,
            content=success_response(data).model_dump(mode="json"),
        )
    return JSONResponse(content=success_response(data).model_dump(mode="json"))


def create_submissions_router(
    submissions: SubmissionService,
    workflow: SubmissionWorkflow,
) -> APIRouter:
    """Create submissions router with injected services."""
    router = APIRouter(prefix="/submissions", tags=["submissions"])

    @router.post("", status_code=201)
    async def create_submission(body: SubmissionCreate, session: Session = Depends(authenticated)):
        """Start a draft owned by the caller."""
        submission = submissions.create(session.email, body)
        return success_response(submission.model_dump(mode="json"))

    @router.get("")
    async def list_submissions(
        status: SubmissionStatus | None = None,
        session: Session = Depends(role_at_least(Role.PRO)),
    ):
        """Review queue for PRO and leaders."""
        items = submissions.list_by_status(status)
        return success_response([s.model_dump(mode="json") for s in items])

    @router.get("/{submission_id}")
    async def get_submission(submission_id: str, session: Session | None = Depends(current_session)):
        """Owner, PRO and leaders can read a submission."""
        submission = submissions.get_by_id(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        check_resource_access(session, submission.submitted_by_email, allow_pro=True, allow_leader=True)
        return success_response(submission.model_dump(mode="json"))

    @router.post("/{submission_id}/ready")
    async def mark_ready(submission_id: str, session: Session | None = Depends(current_session)):
        return _transition_response(workflow.mark_ready(session, submission_id))

    @router.post("/{submission_id}/send-for-approval")
    async def send_for_approval(
        submission_id: str,
        body: SendForApprovalRequest,
        session: Session | None = Depends(current_session),
    ):
        return _transition_response(
            workflow.send_for_approval(session, submission_id, body.edited_post_text)
        )

    @router.post("/{submission_id}/approve")
    async def decide(
        submission_id: str,
        body: DecisionRequest,
        session: Session | None = Depends(current_session),
    ):
        return _transition_response(
            workflow.decide(session, submission_id, body.approved, body.comment)
        )

    @router.post("/{submission_id}/post")
    async def post(submission_id: str, session: Session | None = Depends(current_session)):
        return _transition_response(workflow.post(session, submission_id))

    return router
