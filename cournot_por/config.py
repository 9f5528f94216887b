import os
from dotenv import load_dotenv

load_dotenv()

# Single upstream gateway; every step is POSTed here inside an envelope
GATEWAY_URL = os.getenv("COURNOT_GATEWAY_URL", "https://interface.cournot.ai/play/polymarket/ai_data")

HTTP_CONNECT_TIMEOUT_S = float(os.getenv("COURNOT_CONNECT_TIMEOUT_S", "10.0"))
TIMEOUT_S = float(os.getenv("COURNOT_TIMEOUT_S", "300.0"))  # 5 min per attempt

# Retry policy
MAX_ATTEMPTS = 3
BACKOFF_BASE_MS = 1000
BACKOFF_CAP_MS = 10_000
TRANSIENT_STATUSES = (408, 429)  # plus every 5xx

REDACTION_MARKER = "[REDACTED]"

LOG_LEVEL = os.getenv("COURNOT_LOG_LEVEL", "WARNING").upper()

# Pipeline defaults
DEFAULT_COLLECTORS = ["CollectorGeminiGrounded"]

# Report limits
MAX_HIGHLIGHTS = 10
MAX_REASONING_STEPS = 10
