"""Parse pasted flashcards in ``Q:``/``A:`` form.

    Q: What does SM-2 stand for?
    A: SuperMemo 2
    Question: Minimum ease factor?
    Answer: 1.3

A card is emitted once it has both a question and an answer. Lines that are
neither start nor answer lines are ignored.
"""
import re

from recall.services.errors import FlashcardParseError
from recall.services.scheduler_service import ItemContent

QUESTION_PATTERN = re.compile(r"^(?:Q:|Question:)\s*", re.IGNORECASE)
ANSWER_PATTERN = re.compile(r"^(?:A:|Answer:)\s*", re.IGNORECASE)


def parse_flashcards(text: str, tags: frozenset[str] = frozenset()) -> list[ItemContent]:
    cards: list[ItemContent] = []
    question: str | None = None
    answer: str | None = None

    def flush():
        if question and answer:
            cards.append(ItemContent(prompt=question, answer=answer, tags=tags))

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if QUESTION_PATTERN.match(line):
            flush()
            question = QUESTION_PATTERN.sub("", line, count=1).strip()
            answer = None
        elif ANSWER_PATTERN.match(line):
            answer = ANSWER_PATTERN.sub("", line, count=1).strip()

    flush()

    if not cards:
        raise FlashcardParseError("No valid flashcards found. Use Q: and A: format.")
    return cards
