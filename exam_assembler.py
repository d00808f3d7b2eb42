# exam_assembler.py
# -----------------------------------------------------------------------------
# Final-exam question assembly across all course topics.
# 1) per-topic exam-grade generation, strictly sequential, over-provisioned 50%
# 2) one combined-content top-up pass when short of the target
# 3) shuffle + truncate; static fallback bank when nothing survived
# A rate/quota limit stops all further backend calls for the request.
# -----------------------------------------------------------------------------

import math
import random
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from ai_client import GenerationLimitError
from content_aggregator import TopicContent
from fallback_bank import fallback_exam_questions
from question_generator import QuestionGenerator
from question_validator import QuestionValidator
from response_parser import extract_questions

DEFAULT_MIN_QUESTIONS = 50
MAX_QUESTIONS = 60
MIN_PER_TOPIC = 8
OVERPROVISION = 1.5
MAX_TOP_UP = 30
FALLBACK_COUNT = 30

BASE_DURATION_MIN = 15
MINUTES_PER_QUESTION = 1.0
MIN_DURATION_MIN = 30


LIMIT_STATUS_CODES = (429, 403)


def is_limit_error(exc: BaseException) -> bool:
    """Rate or quota limit, by class or by a status_code carried on the error."""
    return isinstance(exc, GenerationLimitError) or getattr(exc, "status_code", None) in LIMIT_STATUS_CODES


def exam_duration(question_count: int) -> int:
    """Minutes: 15 fixed + 1 per question, never under 30."""
    minutes = BASE_DURATION_MIN + max(0, int(question_count)) * MINUTES_PER_QUESTION
    return int(max(MIN_DURATION_MIN, math.ceil(minutes)))


def questions_per_topic(min_questions: int, topic_count: int) -> int:
    return max(MIN_PER_TOPIC, math.ceil(min_questions * OVERPROVISION / max(1, topic_count)))


class AssembledExam(NamedTuple):
    questions: List[Dict[str, Any]]
    duration: int
    used_fallback: bool
    rate_limited: bool
    errors: List[str]


class ExamAssembler:
    def __init__(self, generator: QuestionGenerator,
                 validator: Optional[QuestionValidator] = None,
                 rng: Optional[random.Random] = None):
        self.generator = generator
        self.validator = validator or QuestionValidator()
        self.rng = rng or random.Random()

    def _accept(self, raw: str, references: Sequence[str]) -> List[Dict[str, Any]]:
        candidates, _passing = extract_questions(raw)
        accepted, rejected = self.validator.check(candidates, references)
        if any(rejected.values()):
            print(f"[qgen] kept {len(accepted)}/{len(candidates)} (rejected: {rejected})")
        return accepted

    def assemble(self, contents: Sequence[TopicContent], course_title: str,
                 min_questions: int = DEFAULT_MIN_QUESTIONS,
                 max_questions: int = MAX_QUESTIONS) -> AssembledExam:
        if min_questions < 1 or max_questions < 1:
            raise ValueError(f"question bounds must be positive (min={min_questions}, max={max_questions})")
        contents = list(contents)
        pool: List[Dict[str, Any]] = []
        errors: List[str] = []
        rate_limited = False

        per_topic = questions_per_topic(min_questions, len(contents))

        # ---- pass 1: per topic -------------------------------------------------
        for unit in contents:
            try:
                raw = self.generator.exam_questions(unit, course_title, per_topic)
                refs = list(unit.existing_question_texts)
                pool.extend(self._accept(raw, refs))
            except Exception as e:
                errors.append(str(e))
                if is_limit_error(e):
                    rate_limited = True
                    print(f"[qgen] {e}; skipping remaining topics")
                    break
                print(f"[qgen] topic '{unit.topic_title}' failed: {e}")

        # ---- pass 2: combined top-up -------------------------------------------
        target = min(min_questions, max_questions)
        if len(pool) < target and contents and not rate_limited:
            wanted = min(target - len(pool), MAX_TOP_UP)
            try:
                raw = self.generator.combined_questions(contents, wanted)
                extra = self._accept(raw, [q["question"] for q in pool])
                pool.extend(extra)
                print(f"[qgen] top-up requested {wanted}, accepted {len(extra)}")
            except Exception as e:
                errors.append(str(e))
                rate_limited = rate_limited or is_limit_error(e)
                print(f"[qgen] top-up {'stopped' if rate_limited else 'failed'}: {e}")

        self.rng.shuffle(pool)
        final = pool[:min(target, len(pool))]

        used_fallback = False
        if not final:
            count = min(FALLBACK_COUNT, max_questions)
            print(f"[qgen] no questions generated for '{course_title}'; using {count} fallback questions")
            final = fallback_exam_questions(course_title, count)
            used_fallback = True

        return AssembledExam(
            questions=final,
            duration=exam_duration(len(final)),
            used_fallback=used_fallback,
            rate_limited=rate_limited,
            errors=errors,
        )


__all__ = ["AssembledExam", "ExamAssembler", "exam_duration", "is_limit_error", "questions_per_topic", "MAX_QUESTIONS"]
