"""View models for override review endpoints."""

from __future__ import annotations

import datetime
import decimal

import pydantic as p

from markbook.model import AuditEntry, AuditEntryID, Decision, OverrideProposal, ProposalID, ProposalState, Resolution


class ProposalResponse(p.BaseModel):
    proposal: OverrideProposal
    history: list[AuditEntry] = p.Field(default_factory=list)


class ProposalListResponse(p.BaseModel):
    proposals: list[OverrideProposal]
    total: int


class DecisionRequest(p.BaseModel):
    justification: str = p.Field(min_length=1)

    @p.field_validator("justification")
    @classmethod
    def validate_justification(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("justification must not be blank")
        return v.strip()


class DecisionResponse(p.BaseModel):
    proposal_id: ProposalID
    decision: Decision
    state: ProposalState
    committed_value: decimal.Decimal | None
    audit_id: AuditEntryID
    resolve_time: datetime.datetime | None

    @classmethod
    def from_resolution(cls, resolution: Resolution) -> DecisionResponse:
        return cls(
            proposal_id=resolution.proposal.proposal_id,
            decision=resolution.audit.decision,
            state=resolution.proposal.state,
            committed_value=resolution.committed_value,
            audit_id=resolution.audit.audit_id,
            resolve_time=resolution.proposal.resolve_time,
        )
