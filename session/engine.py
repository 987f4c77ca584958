# session/engine.py

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

from questions.catalog import QuestionCatalog
from questions.validation import Rejected, validate
from session.context import DISPLAY_NAME_FIELD, IDENTITY_FIELD
from session.store import ConversationStore

logger = logging.getLogger(__name__)


# -------------------------------------------------
# Outcomes of submit_answer
# -------------------------------------------------

@dataclass(frozen=True)
class Prompt:
    text: str


@dataclass(frozen=True)
class Completed:
    identity: str
    record: Mapping[str, str]


class _Ignored:
    def __repr__(self):
        return "Ignored"


Ignored = _Ignored()

Outcome = Union[Prompt, Rejected, Completed, _Ignored]


class SessionEngine:
    """
    Drives one identity through the question catalog.

    States per identity: no session, or awaiting answer at `cursor`.
    A completed record is handed back to the caller and the session is
    removed in the same step; the caller owns persisting it.
    """

    def __init__(self, catalog: QuestionCatalog, store: ConversationStore):
        reserved = {IDENTITY_FIELD, DISPLAY_NAME_FIELD} & set(catalog.keys())
        if reserved:
            raise ValueError(f"Question keys clash with seed fields: {sorted(reserved)}")
        self.catalog = catalog
        self.store = store

    def begin_session(self, identity: str, display_name: str = "") -> str:
        with self.store.lock(identity):
            replaced = identity in self.store
            self.store.create(identity, display_name)
        logger.info("Session started for %s (replaced=%s)", identity, replaced)
        return self.catalog[0].prompt

    def cancel_session(self, identity: str) -> bool:
        with self.store.lock(identity):
            existed = self.store.delete(identity)
        if existed:
            logger.info("Session canceled for %s", identity)
        return existed

    def submit_answer(self, identity: str, raw_text: str) -> Outcome:
        with self.store.lock(identity):
            session = self.store.get(identity)
            if session is None:
                return Ignored

            question = self.catalog[session.cursor]
            result = validate(raw_text, question.answer_type)
            if isinstance(result, Rejected):
                logger.debug("Rejected answer for %s at %s", identity, question.key)
                return result

            session.answers[question.key] = result.value
            session.cursor += 1

            if session.cursor < len(self.catalog):
                return Prompt(self.catalog[session.cursor].prompt)

            self.store.delete(identity)
            record = MappingProxyType(dict(session.answers))

        logger.info("Session completed for %s", identity)
        return Completed(identity=identity, record=record)
