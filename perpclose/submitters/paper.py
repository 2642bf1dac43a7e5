"""Paper submitter that records close requests instead of broadcasting them."""

import logging
import threading
import uuid
from typing import Union

from perpclose.models import DecreaseOrderRequest, DecreasePositionRequest, SubmissionResult
from perpclose.submitters.base import BaseSubmitter

logger = logging.getLogger(__name__)

Request = Union[DecreaseOrderRequest, DecreasePositionRequest]


class PaperSubmitter(BaseSubmitter):
    """Paper submitter for dry runs and tests.
    
    Keeps every accepted request in memory. Only one submission may be
    in flight at a time; a concurrent attempt is rejected rather than
    queued.
    """

    def __init__(self):
        """Initialize an empty paper submitter."""
        self._lock = threading.Lock()
        self._submitted: list[tuple[str, Request]] = []

    def _submit(self, request: Request, kind: str) -> SubmissionResult:
        """Record a request if no other submission is in flight.
        
        Args:
            request: Request to record.
            kind: Label used in the status message.
            
        Returns:
            SubmissionResult with a PAPER_ id, or REJECTED when busy.
        """
        if not self._lock.acquire(blocking=False):
            return SubmissionResult(
                request_id="",
                status="REJECTED",
                message="Another submission is in progress",
            )
        try:
            request_id = f"PAPER_{uuid.uuid4().hex[:12].upper()}"
            self._submitted.append((request_id, request))
            logger.info("Paper %s recorded as %s", kind, request_id)
            return SubmissionResult(
                request_id=request_id,
                status="SUBMITTED",
                message=f"Paper {kind} recorded",
            )
        finally:
            self._lock.release()

    def create_decrease_order(self, request: DecreaseOrderRequest) -> SubmissionResult:
        return self._submit(request, "decrease order")

    def decrease_position(self, request: DecreasePositionRequest) -> SubmissionResult:
        return self._submit(request, "decrease")

    def is_busy(self) -> bool:
        return self._lock.locked()

    def get_submissions(self) -> list[tuple[str, Request]]:
        """Get all recorded submissions, oldest first.
        
        Returns:
            List of (request_id, request) pairs.
        """
        return list(self._submitted)

    def reset(self) -> None:
        """Forget all recorded submissions."""
        self._submitted.clear()
