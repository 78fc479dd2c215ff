# Connection Sessions
# Per-connection identity ownership and close-time cleanup

from rendezvous.session.session import Session, SessionState

__all__ = ["Session", "SessionState"]
