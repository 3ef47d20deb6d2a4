"""
FM Corrections: on-device message correction suggestions built on python-apple-fm-sdk.

After each keystroke the chat asks the local Apple Foundation Model whether the
newly typed text corrects the previous message, and offers to rewrite that
message when it does. The SDK is imported lazily; see ``require_apple_fm``.
"""

from .config import Settings
from .controller import ChatController
from .debounce import Debouncer
from .exceptions import AppleFMSetupError, CorrectionError, require_apple_fm
from .models import AnimatingBubble, CorrectionSuggestion, Message, MessageKind
from .service import CorrectionService
# Note: the Toga window lives in fm_corrections.app and is imported on demand.

__all__ = [
    "AnimatingBubble",
    "AppleFMSetupError",
    "ChatController",
    "CorrectionError",
    "CorrectionService",
    "CorrectionSuggestion",
    "Debouncer",
    "Message",
    "MessageKind",
    "Settings",
    "require_apple_fm",
]
