import logging
from pydantic import BaseModel, ValidationError
from typing import Any, Optional, Type, TypeVar

from cournot_por.models.enums import Step, GatewayMethod, CAPABILITIES_PATH
from cournot_por.schemas.steps import (
    PipelineOptions,
    PromptRequest,
    CollectRequest,
    AuditRequest,
    JudgeRequest,
    BundleRequest,
    PromptResponse,
    CollectResponse,
    AuditResponse,
    JudgeResponse,
    BundleResponse,
    CapabilitiesResponse,
)
from cournot_por.schemas.report import PorReport
from cournot_por.services.gateway_client import GatewayClient, CournotError
from cournot_por.services.report_service import build_report

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

class ResponseValidationError(CournotError):
    def __init__(self, step: str, message: str, details: Optional[dict] = None):
        super().__init__("INVALID_RESPONSE", message, False, details)
        self.step = step

def extract_data(raw: Any) -> Any:
    """Unwrap a `{"data": ...}` envelope if the gateway sent one."""
    if isinstance(raw, dict) and "data" in raw:
        return raw["data"]
    return raw

def _validate(step: str, model: Type[ResponseT], raw: Any) -> ResponseT:
    try:
        return model.model_validate(extract_data(raw))
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "<root>" for err in e.errors())
        raise ResponseValidationError(
            step,
            f"Invalid {step} response: {e.error_count()} error(s) at {fields}",
            {"errors": e.errors(include_url=False, include_input=False)},
        ) from None

class PipelineService:
    def __init__(self, client: GatewayClient):
        self.client = client

    def _run_step(self, step: Step, request: BaseModel, model: Type[ResponseT]) -> ResponseT:
        logger.info("Running %s step", step.value)
        raw = self.client.call(step.path, GatewayMethod.POST.value, request.model_dump())
        result = _validate(step.value, model, raw)
        logger.info("Completed %s step", step.value)
        return result

    def run(self, options: PipelineOptions) -> PorReport:
        prompt = self._run_step(Step.PROMPT, PromptRequest(
            user_input=options.query,
            strict_mode=options.strict_mode,
        ), PromptResponse)

        collect = self._run_step(Step.COLLECT, CollectRequest(
            prompt_spec=prompt.prompt_spec,
            tool_plan=prompt.tool_plan,
            collectors=options.collectors,
            include_raw_content=options.include_raw_content,
        ), CollectResponse)

        audit = self._run_step(Step.AUDIT, AuditRequest(
            prompt_spec=prompt.prompt_spec,
            evidence_bundles=collect.evidence_bundles,
        ), AuditResponse)

        judge = self._run_step(Step.JUDGE, JudgeRequest(
            prompt_spec=prompt.prompt_spec,
            evidence_bundles=collect.evidence_bundles,
            reasoning_trace=audit.reasoning_trace,
        ), JudgeResponse)

        bundle = self._run_step(Step.BUNDLE, BundleRequest(
            prompt_spec=prompt.prompt_spec,
            evidence_bundles=collect.evidence_bundles,
            reasoning_trace=audit.reasoning_trace,
            verdict=judge.verdict,
        ), BundleResponse)

        return build_report(prompt, collect, audit, judge, bundle)

    def capabilities(self) -> CapabilitiesResponse:
        raw = self.client.call(CAPABILITIES_PATH, GatewayMethod.GET.value, {})
        return _validate("capabilities", CapabilitiesResponse, raw)

def run_pipeline(options: PipelineOptions, client: Optional[GatewayClient] = None) -> PorReport:
    """Run the five PoR steps in order and build the report. The first failing step aborts the run."""
    return PipelineService(client or GatewayClient(options.code)).run(options)

def get_capabilities(code: str, client: Optional[GatewayClient] = None) -> CapabilitiesResponse:
    return PipelineService(client or GatewayClient(code)).capabilities()
