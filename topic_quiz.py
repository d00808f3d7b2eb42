"""Short per-topic quizzes: generate, keep well-formed questions, or fall back."""

from typing import Any, Dict, Optional

from fallback_bank import PASSING_SCORE, fallback_topic_quiz
from question_generator import QuestionGenerator, calculate_question_count
from question_validator import QuestionValidator
from response_parser import extract_questions

NO_EXPLANATION = "No explanation provided."


def _quiz_validator() -> QuestionValidator:
    # Quizzes quote the transcript directly, so presenter/video wording is allowed.
    return QuestionValidator(unsafe=lambda _text: False, default_explanation=NO_EXPLANATION)


def _build_quiz(raw: str) -> Dict[str, Any]:
    candidates, passing = extract_questions(raw)
    questions = _quiz_validator().filter(candidates)
    if not questions:
        raise ValueError("No valid questions generated")
    return {"questions": questions, "passingScore": passing or PASSING_SCORE}


def generate_quiz_from_transcript(generator: QuestionGenerator, topic_title: str, transcript: str,
                                  num_questions: Optional[int] = None) -> Dict[str, Any]:
    count = num_questions or calculate_question_count(transcript)
    try:
        return _build_quiz(generator.transcript_quiz(topic_title, transcript, count))
    except Exception as e:
        print(f"[quiz] generation failed for '{topic_title}': {e}")
        return fallback_topic_quiz(topic_title, count)


def generate_quiz_from_topic(generator: QuestionGenerator, topic_title: str, topic_description: str,
                             career_path: str, num_questions: int = 5) -> Dict[str, Any]:
    try:
        return _build_quiz(generator.topic_quiz(topic_title, topic_description, career_path, num_questions))
    except Exception as e:
        print(f"[quiz] topic-only generation failed for '{topic_title}': {e}")
        return fallback_topic_quiz(topic_title, num_questions)


__all__ = ["generate_quiz_from_transcript", "generate_quiz_from_topic"]
