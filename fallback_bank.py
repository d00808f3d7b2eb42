"""Static question templates used when AI generation is unavailable."""

from typing import Any, Dict, List, Sequence

PASSING_SCORE = 70

EXAM_TEMPLATES: List[Dict[str, Any]] = [
    {
        "question": "What is the primary goal of studying {title}?",
        "options": [
            "To memorize facts without understanding",
            "To develop practical skills and knowledge",
            "To complete course requirements only",
            "To focus solely on theoretical concepts",
        ],
        "correctAnswer": 1,
        "explanation": "The primary goal is to develop practical skills and deep understanding.",
    },
    {
        "question": "Which approach is most effective for learning {title}?",
        "options": [
            "Passive reading without practice",
            "Active learning with hands-on application",
            "Memorizing without comprehension",
            "Avoiding challenging concepts",
        ],
        "correctAnswer": 1,
        "explanation": "Active learning with practical application leads to better retention and understanding.",
    },
    {
        "question": "What is essential for success in {title}?",
        "options": [
            "Speed over accuracy",
            "Consistent practice and review",
            "Avoiding difficult problems",
            "Working in isolation",
        ],
        "correctAnswer": 1,
        "explanation": "Consistent practice and regular review are key to mastering the subject.",
    },
    {
        "question": "How should you approach problem-solving in {title}?",
        "options": [
            "Give up when facing difficulties",
            "Apply logical reasoning and learned concepts",
            "Guess randomly without analysis",
            "Avoid complex problems",
        ],
        "correctAnswer": 1,
        "explanation": "Problem-solving requires logical reasoning and application of learned concepts.",
    },
    {
        "question": "What is the benefit of understanding foundational concepts in {title}?",
        "options": [
            "It limits your ability to learn advanced topics",
            "It provides a strong base for advanced learning",
            "It makes the subject more confusing",
            "It reduces the need for practice",
        ],
        "correctAnswer": 1,
        "explanation": "Strong foundational knowledge enables better understanding of advanced concepts.",
    },
    {
        "question": "Which learning method is most valuable for {title}?",
        "options": [
            "Rote memorization only",
            "Understanding principles and their application",
            "Avoiding practical exercises",
            "Focusing only on easy topics",
        ],
        "correctAnswer": 1,
        "explanation": "Understanding principles and their practical application is essential for mastery.",
    },
    {
        "question": "What should you do when you encounter a challenging concept in {title}?",
        "options": [
            "Skip it and move on",
            "Break it down and seek additional resources",
            "Give up on the topic",
            "Memorize without understanding",
        ],
        "correctAnswer": 1,
        "explanation": "Breaking down challenging concepts and seeking additional resources helps overcome difficulties.",
    },
    {
        "question": "Why is regular review important in {title}?",
        "options": [
            "It prevents forgetting learned material",
            "It wastes valuable time",
            "It makes concepts more confusing",
            "It reduces the need for practice",
        ],
        "correctAnswer": 0,
        "explanation": "Regular review helps reinforce learning and prevents forgetting.",
    },
    {
        "question": "What role does critical thinking play in {title}?",
        "options": [
            "It is not important for this subject",
            "It helps analyze and evaluate information",
            "It makes learning more difficult",
            "It should be avoided",
        ],
        "correctAnswer": 1,
        "explanation": "Critical thinking is essential for analyzing and evaluating concepts in the subject.",
    },
    {
        "question": "How can you improve your performance in {title}?",
        "options": [
            "Avoid seeking help when needed",
            "Practice regularly and ask questions",
            "Work only when motivated",
            "Focus only on areas you already know",
        ],
        "correctAnswer": 1,
        "explanation": "Regular practice and seeking help when needed leads to continuous improvement.",
    },
]

TOPIC_TEMPLATES: List[Dict[str, Any]] = [
    {
        "question": "What is the primary purpose of learning {title}?",
        "options": [
            "To understand fundamental concepts",
            "To skip other learning requirements",
            "To avoid practical applications",
            "To focus only on theory",
        ],
        "correctAnswer": 0,
        "explanation": "Understanding fundamental concepts is key to mastering any topic.",
    },
    {
        "question": "Which approach is best when studying {title}?",
        "options": [
            "Memorizing without understanding",
            "Skipping practice exercises",
            "Combining theory with hands-on practice",
            "Avoiding related topics",
        ],
        "correctAnswer": 2,
        "explanation": "Combining theory with practice leads to better learning outcomes.",
    },
    {
        "question": "What skill is most important when working with {title}?",
        "options": [
            "Speed over accuracy",
            "Attention to detail",
            "Avoiding feedback",
            "Working in isolation",
        ],
        "correctAnswer": 1,
        "explanation": "Attention to detail is crucial for quality work in any field.",
    },
    {
        "question": "How can you improve your understanding of {title}?",
        "options": [
            "Avoid asking questions",
            "Only read theory",
            "Practice regularly and seek feedback",
            "Skip foundational concepts",
        ],
        "correctAnswer": 2,
        "explanation": "Regular practice and feedback help reinforce learning.",
    },
    {
        "question": "What is a key benefit of mastering {title}?",
        "options": [
            "Fewer career opportunities",
            "Enhanced problem-solving abilities",
            "Limited skill development",
            "Reduced creativity",
        ],
        "correctAnswer": 1,
        "explanation": "Mastering topics enhances your overall problem-solving abilities.",
    },
]


def from_templates(templates: Sequence[Dict[str, Any]], title: str, count: int) -> List[Dict[str, Any]]:
    """Round-robin over `templates`: item i is templates[i % len(templates)]."""
    if not templates:
        return []
    out: List[Dict[str, Any]] = []
    for i in range(max(0, int(count))):
        t = templates[i % len(templates)]
        out.append({
            "question": t["question"].replace("{title}", title),
            "options": list(t["options"]),
            "correctAnswer": t["correctAnswer"],
            "explanation": t["explanation"],
        })
    return out


def fallback_exam_questions(course_title: str, count: int) -> List[Dict[str, Any]]:
    return from_templates(EXAM_TEMPLATES, course_title, count)


def fallback_topic_quiz(topic_title: str, count: int) -> Dict[str, Any]:
    return {"questions": from_templates(TOPIC_TEMPLATES, topic_title, count), "passingScore": PASSING_SCORE}


__all__ = [
    "EXAM_TEMPLATES",
    "TOPIC_TEMPLATES",
    "from_templates",
    "fallback_exam_questions",
    "fallback_topic_quiz",
]
