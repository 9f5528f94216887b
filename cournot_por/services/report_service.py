import json
from typing import Any, Dict, List, Optional, Tuple

from cournot_por.config import MAX_HIGHLIGHTS, MAX_REASONING_STEPS
from cournot_por.schemas.steps import (
    PromptResponse,
    CollectResponse,
    AuditResponse,
    JudgeResponse,
    BundleResponse,
)
from cournot_por.schemas.report import PorReport, EvidenceHighlight, RawResponses

# Upstream payloads are loosely typed; each field is looked up under several names, in priority order.
BUNDLE_ITEM_KEYS = ("items", "evidence_items", "results", "snippets")
ITEM_TITLE_KEYS = ("title", "headline", "name")
ITEM_URL_KEYS = ("source_url", "url", "link")
ITEM_SNIPPET_KEYS = ("snippet", "text", "content", "summary")
BUNDLE_TITLE_KEYS = ("title", "headline")
BUNDLE_URL_KEYS = ("source_url", "url")
BUNDLE_SNIPPET_KEYS = ("snippet", "text", "summary")
BUNDLE_MARKER_KEYS = ("title", "snippet", "source_url", "url", "text")
STEP_TEXT_KEYS = ("description", "summary", "step", "text")
TRACE_STEPS_KEYS = ("steps", "trace", "reasoning_steps")
TRACE_TEXT_KEYS = ("summary", "text")
REQUIREMENT_LIST_KEYS = ("requirements", "criteria", "rules")
REQUIREMENT_LABEL_KEYS = ("description", "label", "name", "id")
REQUIREMENT_MET_KEYS = ("fulfilled", "met", "satisfied", "passed")
RULE_ID_KEYS = ("resolution_rule_id", "rule_id")

def first_present(mapping: Dict[str, Any], keys) -> Any:
    """Return the value of the first key in `keys` that is set (not None) in `mapping`."""
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None

def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None

def extract_evidence_highlights(bundles: List[Any]) -> List[EvidenceHighlight]:
    highlights: List[EvidenceHighlight] = []

    for bundle in bundles:
        if not isinstance(bundle, dict):
            continue

        items = first_present(bundle, BUNDLE_ITEM_KEYS)
        if isinstance(items, list):
            for item in items:
                if not isinstance(item, dict):
                    continue
                highlights.append(EvidenceHighlight(
                    title=_as_str(first_present(item, ITEM_TITLE_KEYS)),
                    source_url=_as_str(first_present(item, ITEM_URL_KEYS)),
                    snippet=_as_str(first_present(item, ITEM_SNIPPET_KEYS)),
                ))
        elif any(bundle.get(k) for k in BUNDLE_MARKER_KEYS):
            # bundle is itself a single evidence item
            highlights.append(EvidenceHighlight(
                title=_as_str(first_present(bundle, BUNDLE_TITLE_KEYS)),
                source_url=_as_str(first_present(bundle, BUNDLE_URL_KEYS)),
                snippet=_as_str(first_present(bundle, BUNDLE_SNIPPET_KEYS)),
            ))

    return highlights[:MAX_HIGHLIGHTS]

def extract_reasoning_summary(trace: Any) -> List[str]:
    if not trace:
        return []

    if isinstance(trace, list):
        summary = []
        for step in trace:
            if not isinstance(step, (dict, list)):
                continue
            desc = first_present(step, STEP_TEXT_KEYS) if isinstance(step, dict) else None
            summary.append(desc if isinstance(desc, str) else json.dumps(step, separators=(",", ":"), ensure_ascii=False))
        return summary[:MAX_REASONING_STEPS]

    if isinstance(trace, dict):
        steps = first_present(trace, TRACE_STEPS_KEYS)
        if isinstance(steps, list):
            return extract_reasoning_summary(steps)
        text = first_present(trace, TRACE_TEXT_KEYS)
        if isinstance(text, str):
            return [text]

    if isinstance(trace, str):
        return [trace]

    return []

def extract_requirements(verdict: Any) -> Tuple[List[str], List[str]]:
    fulfilled: List[str] = []
    unfulfilled: List[str] = []
    if not isinstance(verdict, dict):
        return fulfilled, unfulfilled

    reqs = first_present(verdict, REQUIREMENT_LIST_KEYS)
    if not isinstance(reqs, list):
        return fulfilled, unfulfilled

    for req in reqs:
        if not isinstance(req, dict):
            continue
        label = _as_str(first_present(req, REQUIREMENT_LABEL_KEYS))
        if not label:
            continue
        if first_present(req, REQUIREMENT_MET_KEYS):
            fulfilled.append(label)
        else:
            unfulfilled.append(label)

    return fulfilled, unfulfilled

def extract_resolution_rule_id(verdict: Any) -> Optional[str]:
    if not isinstance(verdict, dict):
        return None
    return _as_str(first_present(verdict, RULE_ID_KEYS))

def build_report(
    prompt: PromptResponse,
    collect: CollectResponse,
    audit: AuditResponse,
    judge: JudgeResponse,
    bundle: BundleResponse,
) -> PorReport:
    fulfilled, unfulfilled = extract_requirements(judge.verdict)

    return PorReport(
        outcome=judge.outcome,
        confidence=judge.confidence,
        resolution_rule_id=extract_resolution_rule_id(judge.verdict),
        evidence_highlights=extract_evidence_highlights(collect.evidence_bundles),
        requirements_fulfilled=fulfilled or None,
        requirements_unfulfilled=unfulfilled or None,
        reasoning_summary=extract_reasoning_summary(audit.reasoning_trace),
        roots=bundle.roots,
        raw=RawResponses(
            prompt_response=prompt,
            collect_response=collect,
            audit_response=audit,
            judge_response=judge,
            bundle_response=bundle,
        ),
    )

def format_report(report: PorReport) -> str:
    """Render the report as markdown."""
    lines = [
        "# PoR Report",
        "",
        f"**Outcome:** {report.outcome}",
        f"**Confidence:** {report.confidence * 100:.1f}%",
    ]
    if report.resolution_rule_id:
        lines.append(f"**Resolution Rule:** {report.resolution_rule_id}")

    lines += ["", "## Evidence Highlights"]
    if not report.evidence_highlights:
        lines.append("No evidence highlights available.")
    for item in report.evidence_highlights:
        parts = []
        if item.title:
            parts.append(f"**{item.title}**")
        if item.source_url:
            parts.append(f"[source]({item.source_url})")
        if item.snippet:
            parts.append(item.snippet)
        lines.append("- " + " — ".join(parts))

    if report.requirements_fulfilled or report.requirements_unfulfilled:
        lines += ["", "## Requirements"]
        if report.requirements_fulfilled:
            lines.append("**Fulfilled:**")
            lines += [f"- [x] {r}" for r in report.requirements_fulfilled]
        if report.requirements_unfulfilled:
            lines.append("**Unfulfilled:**")
            lines += [f"- [ ] {r}" for r in report.requirements_unfulfilled]

    lines += ["", "## Reasoning Summary"]
    if not report.reasoning_summary:
        lines.append("No reasoning steps available.")
    for i, step in enumerate(report.reasoning_summary, start=1):
        lines.append(f"{i}. {step}")

    roots = report.roots
    lines += [
        "",
        "## PoR Roots",
        f"- **Prompt Spec Hash:** `{roots.prompt_spec_hash}`",
        f"- **Evidence Root:** `{roots.evidence_root}`",
        f"- **Reasoning Root:** `{roots.reasoning_root}`",
        f"- **PoR Root:** `{roots.por_root}`",
        "",
        "---",
        "*Don't trust the output -- verify the evidence and reasoning.*",
    ]
    return "\n".join(lines)
