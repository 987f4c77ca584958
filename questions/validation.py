# questions/validation.py

from dataclasses import dataclass
from typing import Union

from questions.catalog import AnswerType


YES = "Yes"
NO = "No"

# Case-folded tokens, English + Arabic + common transliterations
AFFIRMATIVE = {"yes", "y", "yeah", "yep", "ok", "نعم", "ايوه", "أيوه", "اي", "naam", "na3am", "aywa", "aiwa"}
NEGATIVE = {"no", "n", "nope", "لا", "كلا", "la", "laa", "kalla"}

YES_NO_RETRY = "Please answer yes or no (نعم / لا)."


@dataclass(frozen=True)
class Accepted:
    value: str


@dataclass(frozen=True)
class Rejected:
    retry_prompt: str


Validation = Union[Accepted, Rejected]


def validate(raw_text: str, answer_type: AnswerType) -> Validation:
    """
    Normalize a raw operator reply for the given question type.

    - FREE_TEXT: trimmed, always accepted (empty included)
    - YES_NO: trimmed + case-folded, mapped to YES / NO, anything else rejected
    """
    text = (raw_text or "").strip()

    if answer_type is AnswerType.FREE_TEXT:
        return Accepted(text)

    if answer_type is AnswerType.YES_NO:
        token = text.casefold()
        if token in AFFIRMATIVE:
            return Accepted(YES)
        if token in NEGATIVE:
            return Accepted(NO)
        return Rejected(YES_NO_RETRY)

    raise ValueError(f"Unsupported answer type: {answer_type!r}")
