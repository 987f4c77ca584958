# session/context.py

from dataclasses import dataclass, field
from typing import Dict

IDENTITY_FIELD = "identity_id"
DISPLAY_NAME_FIELD = "display_name"


@dataclass
class Session:
    """
    In-flight case for one identity.
    Lives only in process memory; a restart drops it.

    Invariant: answers holds the two seed fields plus exactly `cursor`
    catalog answers.
    """
    identity: str
    cursor: int = 0
    answers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def seeded(cls, identity: str, display_name: str) -> "Session":
        return cls(
            identity=identity,
            answers={
                IDENTITY_FIELD: identity,
                DISPLAY_NAME_FIELD: display_name or "",
            },
        )
