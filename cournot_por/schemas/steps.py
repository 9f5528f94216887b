from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Optional

from cournot_por.config import DEFAULT_COLLECTORS

class PipelineOptions(BaseModel):
    query: str
    code: str
    strict_mode: bool = False
    collectors: List[str] = Field(default_factory=lambda: list(DEFAULT_COLLECTORS))
    include_raw_content: bool = False

    @field_validator("collectors", mode="before")
    @classmethod
    def default_when_missing(cls, v):
        return list(DEFAULT_COLLECTORS) if v is None else v

# --- Requests ---

class PromptRequest(BaseModel):
    user_input: str
    strict_mode: bool

class CollectRequest(BaseModel):
    prompt_spec: Any
    tool_plan: Any
    collectors: List[str]
    include_raw_content: bool

class AuditRequest(BaseModel):
    prompt_spec: Any
    evidence_bundles: List[Any]

class JudgeRequest(BaseModel):
    prompt_spec: Any
    evidence_bundles: List[Any]
    reasoning_trace: Any

class BundleRequest(BaseModel):
    prompt_spec: Any
    evidence_bundles: List[Any]
    reasoning_trace: Any
    verdict: Any

# --- Responses ---
# The gateway adds fields over time; keep whatever it sends.

class StepResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

class PromptResponse(StepResponse):
    market_id: Optional[str] = None
    prompt_spec: Any = None
    tool_plan: Any = None
    metadata: Any = None

class CollectResponse(StepResponse):
    evidence_bundles: List[Any]
    collectors_used: List[str] = Field(default_factory=list)
    execution_logs: Optional[List[Any]] = None
    errors: List[Any] = Field(default_factory=list)

class AuditResponse(StepResponse):
    reasoning_trace: Any = None
    errors: List[Any] = Field(default_factory=list)

class JudgeResponse(StepResponse):
    verdict: Any = None
    outcome: str
    confidence: float = Field(strict=True)
    errors: List[Any] = Field(default_factory=list)

class PorRoots(BaseModel):
    prompt_spec_hash: str
    evidence_root: str
    reasoning_root: str
    por_root: str

class BundleResponse(StepResponse):
    por_bundle: Any = None
    por_root: str
    roots: PorRoots
    errors: List[Any] = Field(default_factory=list)

class CapabilitiesResponse(StepResponse):
    collectors: Optional[List[Any]] = None
    providers: Optional[List[Any]] = None
