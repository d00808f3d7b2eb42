import json
import random
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ai_client import (  # noqa: E402
    GenerationError,
    GenerationQuotaExceeded,
    GenerationRateLimited,
    GenerationServerError,
)
from content_aggregator import TopicContent  # noqa: E402
from exam_assembler import ExamAssembler, exam_duration, is_limit_error, questions_per_topic  # noqa: E402
from fallback_bank import fallback_exam_questions  # noqa: E402


def _mcq(tag):
    # one long, unique word per question keeps the similarity filters out of the way
    return {"question": f"{tag} is it a or b?", "options": ["a", "b", "c", "d"],
            "correctAnswer": 1, "explanation": "x"}


def _reply(questions):
    return "```json\n" + json.dumps({"questions": questions}) + "\n```"


class FakeGenerator:
    def __init__(self, per_topic=None, errors=None, combined=None):
        self.per_topic = per_topic or {}
        self.errors = errors or {}
        self.combined = combined
        self.exam_calls = []
        self.combined_calls = []

    def exam_questions(self, unit, course_title, num_questions):
        self.exam_calls.append((unit.topic_id, num_questions))
        if unit.topic_id in self.errors:
            raise self.errors[unit.topic_id]
        reply = self.per_topic.get(unit.topic_id)
        if isinstance(reply, str):
            return reply
        count = num_questions if reply is None else reply
        return _reply([_mcq(f"{unit.topic_id}q{k:03d}") for k in range(count)])

    def combined_questions(self, units, num_questions):
        self.combined_calls.append(num_questions)
        if isinstance(self.combined, Exception):
            raise self.combined
        if self.combined is not None:
            return self.combined
        return _reply([_mcq(f"extra{k:03d}") for k in range(num_questions)])


def _units(n):
    return [TopicContent(f"top{i}", f"Topic {i}", f"content for topic {i}") for i in range(1, n + 1)]


def _assembler(gen):
    return ExamAssembler(gen, rng=random.Random(7))


# ---- duration ----------------------------------------------------------------
@pytest.mark.parametrize("count, minutes", [
    (0, 30), (10, 30), (15, 30), (16, 31), (20, 35), (50, 65), (60, 75),
])
def test_exam_duration(count, minutes):
    assert exam_duration(count) == minutes


def test_duration_matches_formula_for_all_counts():
    for n in range(0, 200):
        assert exam_duration(n) == max(30, 15 + n)


def test_questions_per_topic_overprovisions():
    assert questions_per_topic(50, 5) == 15
    assert questions_per_topic(50, 20) == 8
    assert questions_per_topic(50, 1) == 75
    assert questions_per_topic(50, 3) == 25


# ---- rate limiting -----------------------------------------------------------
def test_rate_limit_stops_remaining_topics():
    gen = FakeGenerator(errors={"top3": GenerationRateLimited("API_RATE_LIMIT_EXCEEDED", 429)})
    result = _assembler(gen).assemble(_units(5), "Databases", min_questions=50)

    assert [c[0] for c in gen.exam_calls] == ["top1", "top2", "top3"]
    assert gen.combined_calls == []
    assert result.rate_limited
    assert len(result.questions) == 30  # 2 topics x 15


def test_quota_exceeded_also_stops():
    gen = FakeGenerator(errors={"top1": GenerationQuotaExceeded("API_QUOTA_EXCEEDED", 403)})
    result = _assembler(gen).assemble(_units(4), "Databases")

    assert len(gen.exam_calls) == 1
    assert gen.combined_calls == []
    assert result.used_fallback
    assert len(result.questions) == 30


def test_server_error_skips_only_that_topic():
    gen = FakeGenerator(per_topic={t.topic_id: 5 for t in _units(5)},
                        errors={"top2": GenerationServerError("API_SERVER_ERROR", 500)})
    result = _assembler(gen).assemble(_units(5), "Databases", min_questions=20)

    assert len(gen.exam_calls) == 5
    assert gen.combined_calls == []  # 20 collected, no top-up needed
    assert len(result.questions) == 20
    assert result.errors and not result.rate_limited


@pytest.mark.parametrize("status", [429, 403])
def test_limit_status_on_plain_error_stops_generation(status):
    err = GenerationError(f"backend said {status}", status)
    gen = FakeGenerator(errors={t.topic_id: err for t in _units(5)}, combined=err)
    result = _assembler(gen).assemble(_units(5), "Databases")

    assert len(gen.exam_calls) == 1
    assert gen.combined_calls == []
    assert result.rate_limited
    assert result.used_fallback


def test_limit_detection_by_class_or_status():
    assert is_limit_error(GenerationRateLimited("x", 429))
    assert is_limit_error(GenerationError("x", 403))
    assert is_limit_error(RuntimeError("x")) is False
    assert is_limit_error(GenerationServerError("x", 500)) is False


def test_top_up_limit_marks_result_rate_limited():
    gen = FakeGenerator(per_topic={"top1": 2}, combined=GenerationError("slow down", 429))
    result = _assembler(gen).assemble(_units(1), "Networks", min_questions=10)
    assert result.rate_limited
    assert len(result.questions) == 2


@pytest.mark.parametrize("min_q, max_q", [(0, 60), (-5, 60), (10, 0)])
def test_non_positive_bounds_are_rejected(min_q, max_q):
    gen = FakeGenerator()
    with pytest.raises(ValueError):
        _assembler(gen).assemble(_units(2), "Networks", min_questions=min_q, max_questions=max_q)
    assert gen.exam_calls == []


def test_unexpected_error_is_tolerated_per_topic():
    gen = FakeGenerator(per_topic={"top2": 10}, errors={"top1": KeyError("boom")})
    result = _assembler(gen).assemble(_units(2), "Databases", min_questions=10)
    assert len(result.questions) == 10


def test_parse_failure_counts_as_zero_questions():
    gen = FakeGenerator(per_topic={"top1": "sorry, no JSON today", "top2": 10})
    result = _assembler(gen).assemble(_units(2), "Databases", min_questions=10)
    assert len(result.questions) == 10
    assert not result.used_fallback


# ---- pool size ---------------------------------------------------------------
def test_output_truncated_to_min_questions():
    gen = FakeGenerator()
    result = _assembler(gen).assemble(_units(3), "Networks", min_questions=50)
    # 3 topics x 25 requested = 75 accepted
    assert len(result.questions) == 50
    assert result.duration == 65


def test_output_never_exceeds_hard_cap():
    gen = FakeGenerator()
    result = _assembler(gen).assemble(_units(3), "Networks", min_questions=100)
    assert len(result.questions) == 60


def test_top_up_pass_fills_shortfall():
    gen = FakeGenerator(per_topic={"top1": 5, "top2": 5})
    result = _assembler(gen).assemble(_units(2), "Networks", min_questions=50)

    assert gen.combined_calls == [30]  # min(50 - 10, 30)
    assert len(result.questions) == 40


def test_top_up_rejects_duplicates_of_pool():
    dupes = _reply([_mcq("top1q000"), _mcq("top1q001"), _mcq("fresh001")])
    gen = FakeGenerator(per_topic={"top1": 3}, combined=dupes)
    result = _assembler(gen).assemble(_units(1), "Networks", min_questions=10)

    texts = sorted(q["question"] for q in result.questions)
    assert len(texts) == 4
    assert "fresh001 is it a or b?" in texts


def test_top_up_failure_keeps_existing_pool():
    gen = FakeGenerator(per_topic={"top1": 4}, combined=GenerationServerError("down", 503))
    result = _assembler(gen).assemble(_units(1), "Networks", min_questions=10)
    assert len(result.questions) == 4
    assert not result.used_fallback


def test_existing_quiz_questions_are_not_repeated():
    unit = TopicContent("top1", "Topic 1", "content", frozenset({"top1q000 is it a or b?"}))
    gen = FakeGenerator(per_topic={"top1": 3}, combined=_reply([]))
    result = _assembler(gen).assemble([unit], "Networks", min_questions=10)
    assert sorted(q["question"] for q in result.questions) == [
        "top1q001 is it a or b?", "top1q002 is it a or b?",
    ]


def test_output_is_a_permutation_of_the_pool():
    gen = FakeGenerator(per_topic={"top1": 10})
    result = _assembler(gen).assemble(_units(1), "Networks", min_questions=10)
    assert sorted(q["question"] for q in result.questions) == sorted(
        f"top1q{k:03d} is it a or b?" for k in range(10)
    )


# ---- fallback ----------------------------------------------------------------
def test_total_failure_uses_fallback_bank():
    err = GenerationServerError("API_SERVER_ERROR", 500)
    gen = FakeGenerator(errors={t.topic_id: err for t in _units(3)}, combined=err)
    result = _assembler(gen).assemble(_units(3), "Cloud Basics")

    assert result.used_fallback
    assert result.questions == fallback_exam_questions("Cloud Basics", 30)
    assert result.duration == 45
