# exam.py
# -----------------------------------------------------------------------------
# Final exam scheduling + attempt lifecycle (SCHEDULED -> IN_PROGRESS -> COMPLETED)
# - Schedule: enrollment + full topic completion gate, one active exam per user
# - Question set per course is generated once and reused verbatim afterwards
#   (course_exam_banks, first writer wins)
# - Start strips answers; submit grades, sets passed, issues a certificate
# -----------------------------------------------------------------------------

import os, json, uuid, time, random, string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, List, Tuple, Callable

from flask import Blueprint, request, jsonify, g

from ai_client import client_from_env
from content_aggregator import NoContentAvailable, collect_topic_content
from exam_assembler import ExamAssembler, exam_duration, MAX_QUESTIONS
from question_generator import QuestionGenerator
from question_validator import is_structurally_valid

ACTIVE_STATUSES = ("SCHEDULED", "IN_PROGRESS")


# -----------------------------------------------------------------------------
# Blueprint factory
# -----------------------------------------------------------------------------
def create_exam_blueprint(base_path: str, deps: Dict[str, Any], name: str = "exam") -> Blueprint:
    """
    Factory that returns a Blueprint mounted at <base_path>/api/exams.
    Required deps: fetch_one, fetch_all, execute, execute_returning
    Optional deps: assembler (ExamAssembler), ai_client (GenerativeClient)
    """
    url_prefix = (base_path or "").rstrip("/") + "/api/exams"
    bp = Blueprint(name, __name__, url_prefix=url_prefix)

    # ---- Required deps -------------------------------------------------------
    fetch_one: Callable = deps["fetch_one"]
    fetch_all: Callable = deps["fetch_all"]
    execute:   Callable = deps["execute"]
    execute_returning: Callable = deps["execute_returning"]

    # ---- Config --------------------------------------------------------------
    MIN_QUESTIONS = max(1, int(os.getenv("EXAM_MIN_QUESTIONS") or 50))
    MAX_Q         = max(1, min(int(os.getenv("EXAM_MAX_QUESTIONS") or MAX_QUESTIONS), MAX_QUESTIONS))
    PASS_SCORE    = float(os.getenv("EXAM_PASS_SCORE") or 60)

    assembler: Optional[ExamAssembler] = deps.get("assembler")

    def _assembler() -> ExamAssembler:
        nonlocal assembler
        if assembler is None:
            client = deps.get("ai_client") or client_from_env()
            assembler = ExamAssembler(QuestionGenerator(client))
        return assembler

    # ------------------------------ question bank -----------------------------
    _bank_table_ready = False

    def _ensure_bank_table():
        nonlocal _bank_table_ready
        if _bank_table_ready:
            return
        try:
            execute("""
                CREATE TABLE IF NOT EXISTS public.course_exam_banks (
                    "courseId"  TEXT PRIMARY KEY,
                    questions   JSONB NOT NULL,
                    duration    INTEGER NOT NULL,
                    "createdAt" TIMESTAMP(3) NOT NULL DEFAULT CURRENT_TIMESTAMP
                );
            """)
        except Exception as e:
            print(f"[exam] ensure bank table failed: {e}")
        _bank_table_ready = True

    def _usable_set(row: Optional[dict]) -> Optional[Tuple[List[Dict[str, Any]], int]]:
        if not row:
            return None
        questions = _load_json(row.get("questions"))
        if not is_well_formed_question_set(questions):
            return None
        try:
            duration = int(row.get("duration") or 0)
        except (TypeError, ValueError):
            duration = 0
        return questions, (duration if duration > 0 else exam_duration(len(questions)))

    def _stored_question_set(course_id: str) -> Optional[Tuple[List[Dict[str, Any]], int]]:
        _ensure_bank_table()
        try:
            found = _usable_set(fetch_one("""
                SELECT questions, duration
                  FROM public.course_exam_banks
                 WHERE "courseId" = %s;
            """, (course_id,)))
        except Exception as e:
            print(f"[exam] bank lookup failed: {e}")
            found = None
        if found:
            return found
        return _usable_set(fetch_one("""
            SELECT questions, duration
              FROM public.exam_schedules
             WHERE "courseId" = %s AND questions IS NOT NULL
             ORDER BY "createdAt" DESC
             LIMIT 1;
        """, (course_id,)))

    def _store_question_set(course_id: str, questions: List[Dict[str, Any]],
                            duration: int) -> Tuple[List[Dict[str, Any]], int]:
        """Insert unless another request already stored a set; return the stored one."""
        try:
            rows = execute_returning("""
                INSERT INTO public.course_exam_banks ("courseId", questions, duration)
                VALUES (%s, %s::jsonb, %s)
                ON CONFLICT ("courseId") DO NOTHING
                RETURNING "courseId";
            """, (course_id, json.dumps(questions, ensure_ascii=False), duration))
            if rows:
                return questions, duration
            winner = _usable_set(fetch_one("""
                SELECT questions, duration FROM public.course_exam_banks WHERE "courseId" = %s;
            """, (course_id,)))
            if winner:
                print(f"[exam] course {course_id}: question set stored concurrently; reusing it")
                return winner
        except Exception as e:
            print(f"[exam] bank insert failed: {e}")
        return questions, duration

    # ------------------------------ eligibility -------------------------------
    def _topic_rows(course_id: str) -> List[Dict[str, Any]]:
        topics = fetch_all("""
            SELECT id, title, "videoTranscript", "textContent"
              FROM public.topics
             WHERE "courseId" = %s
             ORDER BY "order";
        """, (course_id,)) or []
        quiz_rows = fetch_all("""
            SELECT q."topicId" AS topic_id, qq.question
              FROM public.quizzes q
              JOIN public.quiz_questions qq ON qq."quizId" = q.id
              JOIN public.topics t ON t.id = q."topicId"
             WHERE t."courseId" = %s;
        """, (course_id,)) or []
        by_topic: Dict[str, List[Dict[str, Any]]] = {}
        for r in quiz_rows:
            by_topic.setdefault(str(r.get("topic_id")), []).append({"question": r.get("question")})
        out = []
        for t in topics:
            t = dict(t)
            qs = by_topic.get(str(t.get("id")))
            t["quiz"] = {"questions": qs} if qs else None
            out.append(t)
        return out

    def _generate_question_set(course: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], int]:
        units = collect_topic_content(_topic_rows(course["id"]))
        result = _assembler().assemble(units, course.get("title") or "this course",
                                       min_questions=MIN_QUESTIONS, max_questions=MAX_Q)
        print(f"[exam] course {course['id']}: {len(units)} topics -> {len(result.questions)} questions"
              f"{' (fallback)' if result.used_fallback else ''}")
        return exam_question_records(result.questions), result.duration

    # --------------------------------- routes ---------------------------------
    @bp.post("/schedule")
    def exam_schedule():
        if not getattr(g, "user_id", None):
            return jsonify({"ok": False, "error": "unauthorized"}), 401
        data = request.get_json(silent=True) or {}
        course_id = str(data.get("courseId") or "").strip()
        scheduled_at = _parse_datetime(data.get("scheduledAt"))
        if not course_id or scheduled_at is None:
            return jsonify({"ok": False, "error": "Invalid request data"}), 400

        try:
            enrollment = fetch_one("""
                SELECT id FROM public.enrollments WHERE "userId" = %s AND "courseId" = %s;
            """, (g.user_id, course_id))
            if not enrollment:
                return jsonify({"ok": False,
                                "error": "You must be enrolled in this course to schedule an exam"}), 400

            course = fetch_one("SELECT id, title FROM public.courses WHERE id = %s;", (course_id,))
            if not course:
                return jsonify({"ok": False, "error": "Course not found"}), 404

            total = int((fetch_one("""
                SELECT COUNT(*) AS n FROM public.topics WHERE "courseId" = %s;
            """, (course_id,)) or {}).get("n") or 0)
            completed = int((fetch_one("""
                SELECT COUNT(DISTINCT "topicId") AS n
                  FROM public.topic_progress
                 WHERE "enrollmentId" = %s AND "isCompleted" = true;
            """, (enrollment["id"],)) or {}).get("n") or 0)
            if completed < total:
                return jsonify({
                    "ok": False,
                    "error": ("You must complete all topics and pass all quizzes before scheduling an exam. "
                              f"{completed}/{total} topics completed."),
                    "completed": completed,
                    "total": total,
                }), 400

            active = fetch_one("""
                SELECT id FROM public.exam_schedules
                 WHERE "userId" = %s AND "courseId" = %s AND status::text IN ('SCHEDULED', 'IN_PROGRESS')
                 LIMIT 1;
            """, (g.user_id, course_id))
            if active:
                return jsonify({"ok": False, "error": "You already have a scheduled or ongoing exam"}), 400

            stored = _stored_question_set(course_id)
            if stored:
                questions, duration = stored
                print(f"[exam] course {course_id}: reusing {len(questions)} stored questions")
            else:
                try:
                    questions, duration = _generate_question_set(course)
                except NoContentAvailable as e:
                    return jsonify({"ok": False, "error": str(e)}), 400
                questions, duration = _store_question_set(course_id, questions, duration)

            rows = execute_returning("""
                INSERT INTO public.exam_schedules
                    (id, "userId", "courseId", "scheduledAt", duration, status, questions, "updatedAt")
                VALUES (%s, %s, %s, %s, %s, 'SCHEDULED', %s::jsonb, now())
                RETURNING *;
            """, (uuid.uuid4().hex, g.user_id, course_id, scheduled_at, duration,
                  json.dumps(questions, ensure_ascii=False)))
        except Exception as e:
            print(f"[exam] schedule failed: {e}")
            return jsonify({"ok": False, "error": "Failed to schedule exam"}), 500

        exam = dict(rows[0]) if rows else {}
        exam["questions"] = questions
        exam["duration"] = duration
        return jsonify({"ok": True, "data": exam})

    @bp.get("")
    def exam_list():
        if not getattr(g, "user_id", None):
            return jsonify({"ok": False, "error": "unauthorized"}), 401
        try:
            exams = fetch_all("""
                SELECT * FROM public.exam_schedules WHERE "userId" = %s ORDER BY "scheduledAt" DESC;
            """, (g.user_id,)) or []
        except Exception as e:
            print(f"[exam] list failed: {e}")
            return jsonify({"ok": False, "error": "Failed to fetch exams"}), 500
        return jsonify({"ok": True, "data": [_without_answers(dict(x)) for x in exams]})

    def _owned_exam(exam_id: str) -> Optional[Dict[str, Any]]:
        exam = fetch_one("SELECT * FROM public.exam_schedules WHERE id = %s;", (exam_id,))
        if not exam or str(exam.get("userId")) != str(g.user_id):
            return None
        return dict(exam)

    @bp.post("/<exam_id>/start")
    def exam_start(exam_id: str):
        if not getattr(g, "user_id", None):
            return jsonify({"ok": False, "error": "unauthorized"}), 401
        try:
            exam = _owned_exam(exam_id)
            if not exam:
                return jsonify({"ok": False, "error": "Exam not found"}), 404
            if str(exam.get("status")) != "SCHEDULED":
                return jsonify({"ok": False, "error": "Exam has already started or completed"}), 400
            rows = execute_returning("""
                UPDATE public.exam_schedules
                   SET status = 'IN_PROGRESS', "startedAt" = now(), "updatedAt" = now()
                 WHERE id = %s AND status::text = 'SCHEDULED'
                RETURNING *;
            """, (exam_id,))
        except Exception as e:
            print(f"[exam] start failed: {e}")
            return jsonify({"ok": False, "error": "Failed to start exam"}), 500
        if not rows:
            return jsonify({"ok": False, "error": "Exam has already started or completed"}), 400

        started = _without_answers(dict(rows[0]))
        minutes = int(started.get("duration") or 0)
        started["endTime"] = (datetime.now(timezone.utc) + timedelta(minutes=minutes)).isoformat()
        return jsonify({"ok": True, "data": started})

    @bp.post("/<exam_id>/submit")
    def exam_submit(exam_id: str):
        if not getattr(g, "user_id", None):
            return jsonify({"ok": False, "error": "unauthorized"}), 401
        data = request.get_json(silent=True) or {}
        answers = _normalize_answers(data.get("answers"))
        if answers is None:
            return jsonify({"ok": False, "error": "Invalid request data"}), 400

        try:
            exam = _owned_exam(exam_id)
            if not exam:
                return jsonify({"ok": False, "error": "Exam not found"}), 404
            if str(exam.get("status")) != "IN_PROGRESS":
                return jsonify({"ok": False, "error": "Exam is not in progress"}), 400

            result = grade_exam(_load_json(exam.get("questions")) or [], answers, PASS_SCORE)
            rows = execute_returning("""
                UPDATE public.exam_schedules
                   SET status = 'COMPLETED', "completedAt" = now(), "updatedAt" = now(),
                       answers = %s::jsonb, score = %s, passed = %s
                 WHERE id = %s AND status::text = 'IN_PROGRESS'
                RETURNING *;
            """, (json.dumps(answers), result["score"], result["passed"], exam_id))
            if not rows:
                return jsonify({"ok": False, "error": "Exam is not in progress"}), 400

            certificate = None
            if result["passed"]:
                cert_rows = execute_returning("""
                    INSERT INTO public.certificates
                        (id, "userId", "courseId", level, "examScore", "certificateNumber", "updatedAt")
                    VALUES (%s, %s, %s, %s::"CertificateLevel", %s, %s, now())
                    ON CONFLICT ("userId", "courseId") DO NOTHING
                    RETURNING *;
                """, (uuid.uuid4().hex, g.user_id, exam.get("courseId"),
                      certificate_level(result["score"]), result["score"], certificate_number()))
                certificate = dict(cert_rows[0]) if cert_rows else None
        except Exception as e:
            print(f"[exam] submit failed: {e}")
            return jsonify({"ok": False, "error": "Failed to submit exam"}), 500

        return jsonify({"ok": True, "data": {
            "exam": _without_answers(dict(rows[0])),
            "score": result["score"],
            "passed": result["passed"],
            "correctCount": result["correct_count"],
            "totalQuestions": result["total"],
            "feedback": result["feedback"],
            "certificate": certificate,
        }})

    return bp


# -----------------------------------------------------------------------------#
# Helpers
# -----------------------------------------------------------------------------#
def _load_json(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _normalize_answers(answers: Any) -> Optional[Dict[str, int]]:
    """questionId -> option index; whole floats (1.0) count as ints. None if malformed."""
    if not isinstance(answers, dict):
        return None
    out: Dict[str, int] = {}
    for qid, value in answers.items():
        if isinstance(value, bool):
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int):
            return None
        out[str(qid)] = value
    return out


def _without_answers(exam: Dict[str, Any]) -> Dict[str, Any]:
    qs = _load_json(exam.get("questions"))
    if isinstance(qs, list):
        exam["questions"] = [
            {k: v for k, v in q.items() if k not in ("correctAnswer", "explanation")}
            for q in qs if isinstance(q, dict)
        ]
    return exam


def is_well_formed_question_set(questions: Any) -> bool:
    return (isinstance(questions, list) and len(questions) > 0
            and all(is_structurally_valid(q) for q in questions))


def exam_question_records(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Stored shape: stable ids exam-q-1.. plus the question fields."""
    return [{
        "id": f"exam-q-{i}",
        "question": q["question"],
        "options": list(q["options"]),
        "correctAnswer": q["correctAnswer"],
        "explanation": q.get("explanation") or "",
    } for i, q in enumerate(questions, start=1)]


def grade_exam(questions: List[Dict[str, Any]], answers: Dict[str, int],
               pass_score: float = 60) -> Dict[str, Any]:
    correct = 0
    feedback: List[Dict[str, Any]] = []
    for q in questions:
        user_answer = answers.get(str(q.get("id")))
        ok = user_answer is not None and user_answer == q.get("correctAnswer")
        correct += 1 if ok else 0
        feedback.append({
            "questionId": q.get("id"),
            "isCorrect": ok,
            "userAnswer": user_answer,
            "correctAnswer": q.get("correctAnswer"),
        })
    score = round(100.0 * correct / len(questions), 2) if questions else 0.0
    return {
        "score": score,
        "passed": bool(questions) and score >= pass_score,
        "correct_count": correct,
        "total": len(questions),
        "feedback": feedback,
    }


def certificate_level(score: float) -> str:
    if score >= 95:
        return "PLATINUM"
    if score >= 85:
        return "GOLD"
    if score >= 75:
        return "SILVER"
    return "BRONZE"


def _base36(n: int) -> str:
    digits = string.digits + string.ascii_uppercase
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = digits[r] + out
        if n == 0:
            return out


def certificate_number(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    rng = rng or random.SystemRandom()
    suffix = "".join(rng.choice(string.ascii_uppercase + string.digits) for _ in range(6))
    return f"LANA-{_base36(now_ms)}-{suffix}"
