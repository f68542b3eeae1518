"""Protocol constants.

Keep these in one place to avoid stringly-typed message handling.
"""

# Correlation key carried inside the meta mapping.
REQUEST_ID = "requestId"

# Synthetic, error-flagged completion signals generated locally.
MATCHER_FAULT = "tether/MATCHER_FAULT"
TRANSFORM_FAULT = "tether/TRANSFORM_FAULT"
EMIT_FAULT = "tether/EMIT_FAULT"
REMOTE_FAULT = "tether/REMOTE_FAULT"
TIMEOUT = "tether/TIMEOUT"
CANCELLED = "tether/CANCELLED"

# Request lifecycle.
INIT = "INIT"
REGISTERED = "REGISTERED"
COMPLETED = "COMPLETED"
