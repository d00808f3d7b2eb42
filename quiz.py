import json
import uuid
from typing import Any, Dict, Optional, Callable

from flask import Blueprint, jsonify, g

from ai_client import client_from_env
from question_generator import QuestionGenerator, calculate_question_count
from topic_quiz import generate_quiz_from_transcript

MIN_NOTES_CHARS = 100
MAX_NOTES_CHARS = 10000


# ----------------------------- Blueprint -----------------------------
def create_quiz_blueprint(base_path: str, deps: Dict[str, Any], name: str = "quiz") -> Blueprint:
    """
    Topic quiz generation, mounted under <base_path>/api/topics.
    Quizzes are generated from the topic notes only, once per topic.
    """
    mount_prefix = (base_path or "").rstrip("/") + "/api/topics"
    bp = Blueprint(name, __name__, url_prefix=mount_prefix)

    fetch_one: Callable = deps["fetch_one"]
    execute: Callable = deps["execute"]
    execute_returning: Callable = deps["execute_returning"]

    generator: Optional[QuestionGenerator] = deps.get("generator")

    def _generator() -> QuestionGenerator:
        nonlocal generator
        if generator is None:
            generator = QuestionGenerator(deps.get("ai_client") or client_from_env())
        return generator

    def _save_quiz(topic_id: str, title: str, quiz: Dict[str, Any]) -> Optional[str]:
        """Insert quiz + questions; None when a quiz for the topic already exists."""
        rows = execute_returning("""
            INSERT INTO public.quizzes (id, "topicId", title, "passingScore", "updatedAt")
            VALUES (%s, %s, %s, %s, now())
            ON CONFLICT ("topicId") DO NOTHING
            RETURNING id;
        """, (uuid.uuid4().hex, topic_id, title, quiz["passingScore"]))
        if not rows:
            return None
        quiz_id = rows[0]["id"]
        for order, q in enumerate(quiz["questions"], start=1):
            execute("""
                INSERT INTO public.quiz_questions
                    (id, "quizId", question, options, "correctAnswer", explanation, "order", "updatedAt")
                VALUES (%s, %s, %s, %s::jsonb, %s, %s, %s, now());
            """, (uuid.uuid4().hex, quiz_id, q["question"], json.dumps(q["options"]),
                  q["correctAnswer"], q.get("explanation"), order))
        return quiz_id

    @bp.post("/<topic_id>/generate-quiz")
    def generate_quiz(topic_id: str):
        if not getattr(g, "user_id", None):
            return jsonify({"ok": False, "error": "unauthorized"}), 401
        try:
            topic = fetch_one("""
                SELECT id, title, "textContent", "courseId" FROM public.topics WHERE id = %s;
            """, (topic_id,))
            if not topic:
                return jsonify({"ok": False, "error": "Topic not found"}), 404

            existing = fetch_one('SELECT id FROM public.quizzes WHERE "topicId" = %s;', (topic_id,))
            if existing:
                return jsonify({"ok": True, "message": "Quiz already exists", "quizId": existing["id"]})

            enrollment = fetch_one("""
                SELECT id FROM public.enrollments WHERE "userId" = %s AND "courseId" = %s;
            """, (g.user_id, topic.get("courseId")))
            if not enrollment:
                return jsonify({"ok": False, "error": "Not enrolled in this course"}), 403

            notes = (topic.get("textContent") or "").strip()
            if len(notes) < MIN_NOTES_CHARS:
                return jsonify({
                    "ok": False,
                    "error": ("Topic notes are missing or too short to generate a quiz. "
                              "Please ensure the topic has detailed notes before generating a quiz."),
                    "requiresNotes": True,
                }), 400

            count = calculate_question_count(notes)
            print(f"[quiz] generating {count} questions for '{topic['title']}' ({len(notes)} chars of notes)")
            quiz = generate_quiz_from_transcript(_generator(), topic["title"], notes[:MAX_NOTES_CHARS], count)

            title = f"{topic['title']} Quiz"
            quiz_id = _save_quiz(topic_id, title, quiz)
            if quiz_id is None:
                existing = fetch_one('SELECT id FROM public.quizzes WHERE "topicId" = %s;', (topic_id,))
                return jsonify({"ok": True, "message": "Quiz already exists",
                                "quizId": (existing or {}).get("id")})
        except Exception as e:
            print(f"[quiz] generation error: {e}")
            return jsonify({"ok": False, "error": "Failed to generate quiz"}), 500

        return jsonify({
            "ok": True,
            "message": "Quiz generated successfully from topic notes",
            "quiz": {
                "id": quiz_id,
                "title": title,
                "questionCount": len(quiz["questions"]),
                "passingScore": quiz["passingScore"],
            },
            "source": "notes",
        })

    return bp
