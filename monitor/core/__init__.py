from .channels import ErrorChannel, RecordChannel, SessionReport
from .network import StreamConnection, make_dialer
from .session import SessionManager, SessionState, Subscription

__all__ = [
    "RecordChannel",
    "ErrorChannel",
    "SessionReport",
    "StreamConnection",
    "make_dialer",
    "SessionManager",
    "SessionState",
    "Subscription",
]
