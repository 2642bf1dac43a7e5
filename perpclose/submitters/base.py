"""Base submitter interface for perpclose."""

from abc import ABC, abstractmethod

from perpclose.models import DecreaseOrderRequest, DecreasePositionRequest, SubmissionResult


class BaseSubmitter(ABC):
    """Abstract base class for transaction-submission collaborators.

    Implementations sign and broadcast the requests built by the engine.
    They are responsible for allowing only one in-flight submission per
    session and for any cancellation; the calculator itself has nothing
    to cancel.
    """

    @abstractmethod
    def create_decrease_order(self, request: DecreaseOrderRequest) -> SubmissionResult:
        """Create a conditional decrease order.
        
        Args:
            request: Order to create.
            
        Returns:
            SubmissionResult describing the outcome.
        """
        pass

    @abstractmethod
    def decrease_position(self, request: DecreasePositionRequest) -> SubmissionResult:
        """Decrease a position at market.
        
        Args:
            request: Decrease to execute.
            
        Returns:
            SubmissionResult describing the outcome.
        """
        pass

    @abstractmethod
    def is_busy(self) -> bool:
        """Check if a submission is in flight.
        
        Returns:
            True while a submission has not completed.
        """
        pass
