# question_validator.py
# -----------------------------------------------------------------------------
# Filters for generated multiple-choice questions.
# - Structural: question text, exactly 4 options, answer index 0..3
# - Duplicates: exact, word-overlap, and leading-phrase similarity
# - Content safety: presenter / first-person / platform / engagement phrasing
# -----------------------------------------------------------------------------

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

DEFAULT_EXPLANATION = "Based on the academic content presented in the course material."

OPTION_COUNT = 4

# Similarity thresholds (tunable)
MIN_SIMILAR_LENGTH = 20        # both texts must be longer than this
LENGTH_RATIO = 0.8             # shorter/longer must exceed this
WORD_OVERLAP = 0.7             # shared fraction of the smaller word list
MIN_WORD_LENGTH = 3            # only words longer than this are compared
PREFIX_WORDS = 12
MIN_PREFIX_CHARS = 30          # shared prefix must be longer than this

UNSAFE_KEYWORDS = (
    # presenter / instructor
    "presenter", "instructor", "lecturer", "speaker", "professor", "teacher",
    "educator", "expert", "specialist", "authority", "researcher",
    # first person
    "i think", "i believe", "i feel", "i would", "i have", "i've",
    "my experience", "my opinion", "my view", "my perspective", "my approach",
    "in my opinion", "from my experience", "i recommend", "i suggest",
    # platform / channel
    "youtube", "channel", "subscribe", "subscription", "video", "video series",
    "playlist", "episode", "series", "tutorial", "course on youtube",
    # social media
    "follow me", "follow us", "like and subscribe", "hit the bell",
    "social media", "twitter", "instagram", "facebook", "linkedin",
    # biography
    "my background", "my career", "my work", "my research", "my study",
    "my university", "my degree", "my qualification", "my expertise",
    # channel branding
    "welcome back", "welcome to", "thank you for watching", "thanks for watching",
    "if you enjoyed", "please like", "comment below", "share this",
    # engagement
    "in this video", "today we", "let's talk about", "we're going to",
    "i'll show you", "we'll cover", "we'll discuss", "we'll learn",
)


def _norm(text: Any) -> str:
    return str(text or "").lower().strip()


def is_unsafe_content(text: str) -> bool:
    lowered = _norm(text)
    return any(k in lowered for k in UNSAFE_KEYWORDS)


def is_structurally_valid(q: Any) -> bool:
    if not isinstance(q, dict):
        return False
    text = q.get("question")
    if not isinstance(text, str) or not text.strip():
        return False
    options = q.get("options")
    if not isinstance(options, list) or len(options) != OPTION_COUNT:
        return False
    answer = q.get("correctAnswer")
    # bool is an int subclass; 1.0 from loose JSON is accepted as 1
    if isinstance(answer, bool):
        return False
    if isinstance(answer, float) and answer.is_integer():
        answer = int(answer)
    if not isinstance(answer, int):
        return False
    return 0 <= answer < OPTION_COUNT


def _long_words(text: str) -> List[str]:
    return [w for w in text.split() if len(w) > MIN_WORD_LENGTH]


def is_similar(a: str, b: str) -> bool:
    """True when two question texts count as duplicates."""
    a, b = _norm(a), _norm(b)
    if a == b:
        return True

    shorter, longer = sorted((len(a), len(b)))
    if shorter > MIN_SIMILAR_LENGTH and shorter / longer > LENGTH_RATIO:
        a_words = _long_words(a)
        b_words = _long_words(b)
        common = [w for w in a_words if w in b_words]
        if len(common) >= min(len(a_words), len(b_words)) * WORD_OVERLAP:
            return True

    a_prefix = " ".join(a.split()[:PREFIX_WORDS])
    b_prefix = " ".join(b.split()[:PREFIX_WORDS])
    return a_prefix == b_prefix and len(a_prefix) > MIN_PREFIX_CHARS


def is_duplicate(text: str, references: Iterable[str]) -> bool:
    return any(is_similar(text, ref) for ref in references)


def normalize_question(q: Dict[str, Any], default_explanation: str = DEFAULT_EXPLANATION) -> Dict[str, Any]:
    explanation = q.get("explanation")
    if not isinstance(explanation, str) or not explanation.strip():
        explanation = default_explanation
    return {
        "question": q["question"].strip(),
        "options": [str(o) for o in q["options"]],
        "correctAnswer": int(q["correctAnswer"]),
        "explanation": explanation,
    }


class QuestionValidator:
    """
    Applies the three filters in order. `unsafe` is the content predicate,
    swappable for a classifier. Survivors of one call are added to the
    references for later candidates of the same call. The instance holds
    configuration only and can be shared across requests.
    """

    def __init__(self, unsafe: Optional[Callable[[str], bool]] = None,
                 default_explanation: str = DEFAULT_EXPLANATION):
        self.unsafe = unsafe or is_unsafe_content
        self.default_explanation = default_explanation

    def check(self, candidates: Iterable[Any],
              references: Iterable[str] = ()) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        """Return (accepted, rejection counts by filter)."""
        refs = [_norm(r) for r in references if r]
        rejected = {"structure": 0, "duplicate": 0, "unsafe": 0}
        accepted: List[Dict[str, Any]] = []

        for q in candidates or []:
            if not is_structurally_valid(q):
                rejected["structure"] += 1
                continue
            text = q["question"]
            if is_duplicate(text, refs):
                rejected["duplicate"] += 1
                continue
            if self.unsafe(text):
                rejected["unsafe"] += 1
                continue
            kept = normalize_question(q, self.default_explanation)
            accepted.append(kept)
            refs.append(_norm(kept["question"]))

        return accepted, rejected

    def filter(self, candidates: Iterable[Any], references: Iterable[str] = ()) -> List[Dict[str, Any]]:
        return self.check(candidates, references)[0]


__all__ = [
    "DEFAULT_EXPLANATION",
    "UNSAFE_KEYWORDS",
    "QuestionValidator",
    "is_duplicate",
    "is_similar",
    "is_structurally_valid",
    "is_unsafe_content",
    "normalize_question",
]
