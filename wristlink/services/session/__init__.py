"""
Session Service - Wearable Side

Responsibilities:
- Session lifecycle (activate, fail, re-activate)
- Mirror of the host's "system enabled" flag
- SOS command delivery and outcome reporting
"""

from .controller import SessionController
from .state import ObservableFlag, SessionState, SOSOutcome

__all__ = ["SessionController", "ObservableFlag", "SessionState", "SOSOutcome"]
