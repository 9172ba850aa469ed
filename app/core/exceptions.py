# app/core/exceptions.py
"""
Error taxonomy for the reward anomaly engine.

Every error carries the HTTP status and a stable code so the API layer can
render it as a structured `{"errors": [...]}` entry without leaking internals.
"""


class RewardAnomalyError(Exception):
    """Base class for all engine errors"""

    status_code = 500
    code = "reward_anomaly_error"
    title = "Reward Anomaly Error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_error(self) -> dict:
        return {"title": self.title, "detail": self.detail, "code": self.code}


class InvalidTimeframe(RewardAnomalyError):
    """Unrecognized timeframe tag; rejected before the store is touched"""

    status_code = 400
    code = "invalid_timeframe"
    title = "Invalid Timeframe"


class InvalidConfiguration(RewardAnomalyError):
    """Missing or non-positive engine thresholds; must be fixed by the operator"""

    status_code = 500
    code = "invalid_configuration"
    title = "Invalid Configuration"


class StoreUnavailable(RewardAnomalyError):
    """Transient store failure; safe to retry with backoff"""

    status_code = 503
    code = "store_unavailable"
    title = "Store Unavailable"


class StoreTimeout(RewardAnomalyError):
    """Snapshot read exceeded the query timeout"""

    status_code = 504
    code = "store_timeout"
    title = "Store Timeout"


class PermissionDenied(RewardAnomalyError):
    """Caller is authenticated but lacks access to the report"""

    status_code = 403
    code = "permission_denied"
    title = "Permission Denied"
