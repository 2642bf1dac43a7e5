"""Submitter implementations for perpclose."""

from perpclose.submitters.base import BaseSubmitter
from perpclose.submitters.paper import PaperSubmitter

__all__ = [
    "BaseSubmitter",
    "PaperSubmitter",
]
