# questions/catalog.py

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence


class AnswerType(Enum):
    FREE_TEXT = "free_text"
    YES_NO = "yes_no"


@dataclass(frozen=True)
class QuestionDefinition:
    """
    One step of the case flow.
    `key` is the answer field, `prompt` is what the operator sees.
    """
    key: str
    prompt: str
    answer_type: AnswerType = AnswerType.FREE_TEXT

    @property
    def label(self) -> str:
        # Column label: prompt without a trailing colon
        return self.prompt[:-1] if self.prompt.endswith(":") else self.prompt


class QuestionCatalog:
    """
    Ordered, fixed list of questions.
    Order defines both the interrogation sequence and the sheet column order.
    """

    def __init__(self, questions: Sequence[QuestionDefinition]):
        keys = [q.key for q in questions]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate question keys: {keys}")
        if not questions:
            raise ValueError("Question catalog must not be empty")
        self._questions = tuple(questions)

    def __len__(self):
        return len(self._questions)

    def __iter__(self):
        return iter(self._questions)

    def __getitem__(self, index: int) -> QuestionDefinition:
        return self._questions[index]

    def keys(self) -> List[str]:
        return [q.key for q in self._questions]

    def labels(self) -> List[str]:
        return [q.label for q in self._questions]


# -------------------------------------------------
# Default case flow
# -------------------------------------------------

QUESTIONS = QuestionCatalog([
    QuestionDefinition("full_name", "Enter the full name:"),
    QuestionDefinition("country", "Which country?"),
    QuestionDefinition("phone", "Phone number (with country code):"),
    QuestionDefinition("email", "Email address:"),
    QuestionDefinition("notes", "Any notes about this case?"),
    QuestionDefinition(
        "consent",
        "Did the person consent to being contacted? (yes/no):",
        AnswerType.YES_NO,
    ),
])
