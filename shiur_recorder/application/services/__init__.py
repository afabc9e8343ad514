# shiur_recorder/application/services/__init__.py

from .session_policy import SessionPolicy, SessionOutcome, SessionOutcomeKind
from .recorder_orchestrator import RecorderOrchestrator, RecorderStatus

__all__ = [
    'SessionPolicy',
    'SessionOutcome',
    'SessionOutcomeKind',
    'RecorderOrchestrator',
    'RecorderStatus'
]
