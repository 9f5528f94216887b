from enum import Enum

class Step(str, Enum):
    PROMPT = "prompt"
    COLLECT = "collect"
    AUDIT = "audit"
    JUDGE = "judge"
    BUNDLE = "bundle"

    @property
    def path(self) -> str:
        return f"/step/{self.value}"

class GatewayMethod(str, Enum):
    GET = "GET"
    POST = "POST"

# Execution order; each step consumes outputs of the ones before it
PIPELINE_STEPS = (Step.PROMPT, Step.COLLECT, Step.AUDIT, Step.JUDGE, Step.BUNDLE)

CAPABILITIES_PATH = "/capabilities"
