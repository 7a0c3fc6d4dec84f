"""Discussion topics: predefined prompts plus operator-injected questions."""

import logging

from focus_group.models import Concept

logger = logging.getLogger(__name__)


def predefined_topics(concept: Concept, templates: list[str], limit: int | None = None) -> list[str]:
    """Render topic templates with the concept title, keeping the first `limit`."""
    topics = [t.format(title=concept.title) for t in templates]
    return topics[:limit] if limit is not None else topics


class TopicSequencer:
    """Ordered topic list with a forward-only cursor."""

    def __init__(self, topics: list[str]) -> None:
        self._topics: list[str] = list(topics)
        self._cursor = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def topics(self) -> tuple[str, ...]:
        return tuple(self._topics)

    def next(self) -> str | None:
        """Topic at the cursor, without advancing."""
        if not self.has_next():
            return None
        return self._topics[self._cursor]

    def has_next(self) -> bool:
        return self._cursor < len(self._topics)

    def advance(self) -> None:
        if self.has_next():
            self._cursor += 1

    def inject(self, text: str) -> None:
        """Queue an operator question after every topic already queued."""
        text = text.strip()
        if not text:
            raise ValueError("Injected question must not be blank")
        self._topics.append(text)
        logger.info("Question queued as topic %d: %s", len(self._topics), text)

    def completed(self) -> list[str]:
        return self._topics[: self._cursor]
