import json
import pytest

from cournot_por.config import GATEWAY_URL
from cournot_por.services.gateway_client import GatewayClient

MOCK_PROMPT_RESPONSE = {
    "data": {
        "market_id": "market-123",
        "prompt_spec": {"id": "spec-1", "query": "Will it rain?"},
        "tool_plan": {"tools": ["search"]},
        "metadata": {"source": "test"},
    }
}

MOCK_COLLECT_RESPONSE = {
    "data": {
        "evidence_bundles": [
            {
                "items": [
                    {
                        "title": "Weather Report",
                        "source_url": "https://weather.example.com",
                        "snippet": "Rain expected tomorrow",
                    },
                    {
                        "title": "Climate Data",
                        "url": "https://climate.example.com",
                        "text": "Precipitation probability 80%",
                    },
                ]
            }
        ],
        "collectors_used": ["CollectorGeminiGrounded"],
        "execution_logs": [],
        "errors": [],
    }
}

MOCK_AUDIT_RESPONSE = {
    "data": {
        "reasoning_trace": [
            {"description": "Analyzed weather forecasts from multiple sources"},
            {"description": "Cross-referenced with historical precipitation data"},
            {"description": "Evaluated confidence based on forecast agreement"},
        ],
        "errors": [],
    }
}

MOCK_JUDGE_RESPONSE = {
    "data": {
        "verdict": {
            "resolution_rule_id": "RULE-001",
            "requirements": [
                {"description": "Multiple sources agree", "fulfilled": True},
                {"description": "Recent data available", "fulfilled": True},
                {"description": "Official source confirms", "fulfilled": False},
            ],
        },
        "outcome": "YES",
        "confidence": 0.85,
        "errors": [],
    }
}

MOCK_BUNDLE_RESPONSE = {
    "data": {
        "por_bundle": {"version": 1, "steps": 5},
        "por_root": "0xabc123",
        "roots": {
            "prompt_spec_hash": "0xdef456",
            "evidence_root": "0x789abc",
            "reasoning_root": "0xdef012",
            "por_root": "0xabc123",
        },
        "errors": [],
    }
}

MOCK_STEP_RESPONSES = {
    "/step/prompt": MOCK_PROMPT_RESPONSE,
    "/step/collect": MOCK_COLLECT_RESPONSE,
    "/step/audit": MOCK_AUDIT_RESPONSE,
    "/step/judge": MOCK_JUDGE_RESPONSE,
    "/step/bundle": MOCK_BUNDLE_RESPONSE,
}

class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds: float):
        self.calls.append(seconds)

@pytest.fixture
def sleeps():
    return SleepRecorder()

@pytest.fixture
def make_client(sleeps):
    def _make(code: str = "testCode", **kwargs) -> GatewayClient:
        kwargs.setdefault("sleep_fn", sleeps)
        return GatewayClient(code, **kwargs)
    return _make

@pytest.fixture
def gateway(requests_mock):
    """Route gateway calls by envelope path; unknown paths answer 404."""
    def _register(responses: dict):
        def _respond(request, context):
            path = request.json()["path"]
            if path not in responses:
                context.status_code = 404
                return f"No mock for path: {path}"
            return json.dumps(responses[path])

        requests_mock.post(GATEWAY_URL, text=_respond)
        return requests_mock
    return _register

def sent_envelopes(mock) -> list:
    return [req.json() for req in mock.request_history]
