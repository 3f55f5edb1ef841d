"""
In-band control tokens embedded in generated conversation turns.

Grammar (matched anywhere in the turn text, case-sensitive):

    END     := "[END_CONVERSATION]"
    HANDOFF := "[HANDOFF" [ ":" ] [ reason ] "]"

END stops the round loop after the turn is recorded. HANDOFF is informational
only: it never names the next speaker, the router always picks dynamically.

Tokens are not distinguished from in-character dialogue that happens to
contain the same literal text; such a turn is treated as a control signal.
"""

import re

from .models import HandoffSignal

END_TOKEN = "[END_CONVERSATION]"
HANDOFF_PATTERN = re.compile(r"\[HANDOFF(?::?\s*([^\]]+))?\]")


def detect_handoff(text: str) -> HandoffSignal:
    """Scan one generated turn for control tokens."""
    handoff_match = HANDOFF_PATTERN.search(text)
    reason = None
    if handoff_match and handoff_match.group(1):
        reason = handoff_match.group(1).strip() or None

    return HandoffSignal(
        should_end=END_TOKEN in text,
        handoff_requested=handoff_match is not None,
        reason=reason,
    )


__all__ = ["END_TOKEN", "HANDOFF_PATTERN", "detect_handoff"]
