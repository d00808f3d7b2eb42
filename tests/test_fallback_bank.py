import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fallback_bank import (  # noqa: E402
    EXAM_TEMPLATES,
    TOPIC_TEMPLATES,
    fallback_exam_questions,
    fallback_topic_quiz,
)
from question_validator import is_structurally_valid  # noqa: E402


def test_exam_fallback_cycles_round_robin_with_title():
    n = len(EXAM_TEMPLATES) * 2 + 3
    out = fallback_exam_questions("Data Engineering", n)
    assert len(out) == n
    for i, q in enumerate(out):
        template = EXAM_TEMPLATES[i % len(EXAM_TEMPLATES)]
        assert q["question"] == template["question"].replace("{title}", "Data Engineering")
        assert q["correctAnswer"] == template["correctAnswer"]
        assert "{title}" not in q["question"]


def test_exam_fallback_questions_are_well_formed():
    assert all(is_structurally_valid(q) for q in fallback_exam_questions("X", 30))


def test_fallback_returns_copies():
    out = fallback_exam_questions("X", 2)
    out[0]["options"].append("extra")
    assert len(EXAM_TEMPLATES[0]["options"]) == 4


def test_zero_or_negative_count_is_empty():
    assert fallback_exam_questions("X", 0) == []
    assert fallback_exam_questions("X", -3) == []


def test_topic_fallback_quiz():
    quiz = fallback_topic_quiz("SQL Joins", 7)
    assert quiz["passingScore"] == 70
    assert len(quiz["questions"]) == 7
    assert quiz["questions"][5]["question"] == TOPIC_TEMPLATES[0]["question"].replace("{title}", "SQL Joins")
