"""View models for the Markbook web application."""

__all__ = [
    # Import views
    "ImportRequest",
    # Override views
    "DecisionRequest",
    "DecisionResponse",
    "ProposalListResponse",
    "ProposalResponse",
    # Grade views
    "OverviewResponse",
]

from .grades import OverviewResponse
from .imports import ImportRequest
from .overrides import DecisionRequest, DecisionResponse, ProposalListResponse, ProposalResponse
