# question_generator.py
# -----------------------------------------------------------------------------
# Prompt templates + raw generation calls for multiple-choice questions.
# - Transcript-grounded prompt (topic quizzes)
# - Exam-grade prompt (final exam, per topic) and combined-content top-up prompt
# - Topic-only prompt (topic quizzes without source text)
# Returns raw model text; parsing/validation happen downstream.
# -----------------------------------------------------------------------------

from typing import Iterable

from ai_client import GenerativeClient
from content_aggregator import TopicContent, combined_content


def calculate_question_count(text_content: str) -> int:
    """Quiz size from source length: 3 for short notes, up to 10."""
    length = len((text_content or "").strip())
    if length < 500:
        return 3
    if length < 1000:
        return 5
    if length < 2000:
        return 7
    if length < 3000:
        return 8
    if length < 5000:
        return 9
    return 10


def _difficulty_mix(n: int) -> str:
    if n <= 4:
        return "1 easy, 1 medium, 1-2 harder"
    if n <= 7:
        return "2 easy, 2-3 medium, 1-2 harder"
    return "3 easy, 3-4 medium, 2-3 harder"


QUIZ_JSON_SHAPE = """{
  "questions": [
    {
      "question": "...",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correctAnswer": 0,
      "explanation": "..."
    }
  ],
  "passingScore": 70
}"""


def transcript_prompt(topic_title: str, transcript: str, num_questions: int) -> str:
    return f"""You are an expert educational quiz creator. Generate {num_questions} high-quality multiple-choice quiz questions based DIRECTLY on the specific content of this transcript.

TOPIC: "{topic_title}"

TRANSCRIPT:
---
{transcript}
---

CRITICAL REQUIREMENTS:
1. Questions MUST be based on SPECIFIC facts, concepts, definitions, or examples stated in the transcript above
2. Do NOT generate generic questions about the topic; every question must reference something explicitly stated in the transcript
3. Cover: specific terms or definitions, examples or case studies, steps or processes, key facts or statistics, relationships between concepts
4. Each question must have EXACTLY 4 options
5. correctAnswer is the INDEX (0-3) of the correct option
6. Wrong options should be plausible but clearly incorrect based on the transcript
7. Quote or reference the transcript in the explanation when possible
8. Difficulty mix: {_difficulty_mix(num_questions)}

Return ONLY valid JSON with this EXACT structure:
{QUIZ_JSON_SHAPE}
"""


def topic_prompt(topic_title: str, topic_description: str, career_path: str, num_questions: int) -> str:
    return f"""You are an expert educational quiz creator for a {career_path} career training course. Create {num_questions} industry-relevant multiple-choice quiz questions about "{topic_title}".

TOPIC: "{topic_title}"
CONTEXT: {topic_description}
CAREER PATH: {career_path}

CRITICAL REQUIREMENTS:
1. Questions must test real, practical knowledge needed for a career in {career_path}
2. Cover core concepts and definitions, best practices, common scenarios, and the tools or methods used in {career_path}
3. Each question must have EXACTLY 4 options
4. correctAnswer is the INDEX (0-3) of the correct option
5. Wrong options should be plausible misconceptions, not obviously wrong
6. Explanations should teach something, not just restate the answer
7. Mix difficulty: foundational, intermediate and advanced

Return ONLY valid JSON with this EXACT structure:
{QUIZ_JSON_SHAPE}
"""


def exam_prompt(course_title: str, unit: TopicContent, num_questions: int) -> str:
    return f"""You are a senior academic examiner writing final examination questions for a university course in {course_title}, to the standard of a rigorous university final examination.

TOPIC: "{unit.topic_title}"

SOURCE MATERIAL:
---
{unit.content}
---

MANDATORY EXAMINATION REQUIREMENTS:
1. Generate EXACTLY {num_questions} multiple-choice questions of university final examination standard
2. Questions must require analytical reasoning, synthesis and evaluation rather than recall
3. ALL QUESTIONS MUST BE DERIVED SOLELY FROM THE SOURCE MATERIAL ABOVE; no external knowledge
4. Include: conceptual analysis, application of principles to novel scenarios, critical evaluation of approaches, comparison of ideas, synthesis of related concepts, problem-solving within the discipline
5. EACH QUESTION MUST HAVE PRECISELY 4 OPTIONS
6. correctAnswer is the INDEX (0-3) of the correct option
7. Incorrect options must be plausible but definitively wrong according to the source material
8. STRICT PROHIBITIONS. Questions must NEVER concern:
   - the lecturer, presenter or instructor as an individual
   - video platforms, channels, social media or promotional content
   - personal anecdotes, experiences or biographical details
9. Use formal academic language and the discipline's terminology

DIFFICULTY DISTRIBUTION:
- 40% advanced analytical questions requiring synthesis
- 35% application questions requiring transfer of concepts
- 25% critical evaluation questions

Return ONLY valid JSON with this EXACT structure, no commentary:
{QUIZ_JSON_SHAPE}
"""


def combined_prompt(units: Iterable[TopicContent], num_questions: int) -> str:
    return f"""Generate {num_questions} additional final examination questions from the combined course content below, to the same rigorous academic standard.

COMBINED COURSE CONTENT:
---
{combined_content(units)}
---

Requirements:
- analytical, application and evaluation questions derived only from the content above
- no questions about the presenter, the platform, or personal narrative
- no duplicates of each other
- EXACTLY 4 options each; correctAnswer is the INDEX (0-3) of the correct option

Return ONLY valid JSON with this EXACT structure:
{QUIZ_JSON_SHAPE}
"""


class QuestionGenerator:
    """Builds prompts and returns the model's raw text. Client errors propagate."""

    def __init__(self, client: GenerativeClient):
        self.client = client

    def exam_questions(self, unit: TopicContent, course_title: str, num_questions: int) -> str:
        return self.client.generate(exam_prompt(course_title, unit, num_questions))

    def combined_questions(self, units: Iterable[TopicContent], num_questions: int) -> str:
        return self.client.generate(combined_prompt(list(units), num_questions))

    def transcript_quiz(self, topic_title: str, transcript: str, num_questions: int) -> str:
        return self.client.generate(transcript_prompt(topic_title, transcript, num_questions))

    def topic_quiz(self, topic_title: str, topic_description: str, career_path: str, num_questions: int) -> str:
        return self.client.generate(topic_prompt(topic_title, topic_description, career_path, num_questions))


__all__ = [
    "QuestionGenerator",
    "calculate_question_count",
    "combined_prompt",
    "exam_prompt",
    "topic_prompt",
    "transcript_prompt",
]
