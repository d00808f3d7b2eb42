"""Build per-topic content units (transcript + notes) for question generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional


class NoContentAvailable(RuntimeError):
    pass


@dataclass(frozen=True)
class TopicContent:
    topic_id: str
    topic_title: str
    content: str
    existing_question_texts: FrozenSet[str] = field(default_factory=frozenset)


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _quiz_question_texts(quiz: Optional[Dict[str, Any]]) -> FrozenSet[str]:
    if not isinstance(quiz, dict):
        return frozenset()
    texts = set()
    for q in quiz.get("questions") or []:
        text = q.get("question") if isinstance(q, dict) else None
        if isinstance(text, str) and text.strip():
            texts.add(text.lower().strip())
    return frozenset(texts)


def topic_content(topic: Dict[str, Any]) -> TopicContent:
    transcript = _text(topic.get("videoTranscript"))
    notes = _text(topic.get("textContent"))
    content = transcript + ("\n\n" + notes if notes else "")
    return TopicContent(
        topic_id=str(topic.get("id") or ""),
        topic_title=str(topic.get("title") or "Untitled topic"),
        content=content,
        existing_question_texts=_quiz_question_texts(topic.get("quiz")),
    )


def collect_topic_content(topics: Iterable[Dict[str, Any]], require: bool = True) -> List[TopicContent]:
    """
    One unit per topic with non-blank text, in input order.
    Topics without transcript and notes are dropped; if none remain and
    `require` is set, NoContentAvailable is raised.
    """
    units = [topic_content(t) for t in topics or [] if isinstance(t, dict)]
    units = [u for u in units if u.content.strip()]
    if require and not units:
        raise NoContentAvailable("No content available to generate exam questions")
    return units


def combined_content(units: Iterable[TopicContent]) -> str:
    return "\n\n---\n\n".join(f"{u.topic_title}:\n{u.content}" for u in units)


__all__ = ["NoContentAvailable", "TopicContent", "collect_topic_content", "combined_content", "topic_content"]
