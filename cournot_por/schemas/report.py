from pydantic import BaseModel, Field
from typing import List, Optional

from cournot_por.schemas.steps import (
    PromptResponse,
    CollectResponse,
    AuditResponse,
    JudgeResponse,
    BundleResponse,
    PorRoots,
)

class EvidenceHighlight(BaseModel):
    title: Optional[str] = None
    source_url: Optional[str] = None
    snippet: Optional[str] = None

class RawResponses(BaseModel):
    prompt_response: PromptResponse
    collect_response: CollectResponse
    audit_response: AuditResponse
    judge_response: JudgeResponse
    bundle_response: BundleResponse

class PorReport(BaseModel):
    outcome: str
    confidence: float
    resolution_rule_id: Optional[str] = None
    evidence_highlights: List[EvidenceHighlight] = Field(default_factory=list)
    requirements_fulfilled: Optional[List[str]] = None
    requirements_unfulfilled: Optional[List[str]] = None
    reasoning_summary: List[str] = Field(default_factory=list)
    roots: PorRoots
    raw: Optional[RawResponses] = None
