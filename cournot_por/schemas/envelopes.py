import json
from pydantic import BaseModel
from typing import Any

class GatewayEnvelope(BaseModel):
    code: str
    post_data: str  # JSON-encoded step payload
    path: str
    method: str  # logical verb read by the gateway; transport is always POST

def build_envelope(code: str, path: str, method: str, payload: Any) -> GatewayEnvelope:
    return GatewayEnvelope(
        code=code,
        post_data=json.dumps(payload),
        path=path,
        method=method,
    )
