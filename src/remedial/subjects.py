"""Subject and grade normalization for coordinator profile data.

Profile records carry free text such as "English and Math Coordinator" or
"Grade III". These helpers turn that into the controlled vocabulary the
planner works with. Nothing here raises: unrecognised input degrades to a
best-effort cleaned string, or None when nothing is left.
"""

import re
from collections.abc import Iterable

SUBJECT_SYNONYMS: dict[str, str] = {
    "english": "English",
    "math": "Math",
    "mathematics": "Math",
    "filipino": "Filipino",
    "science": "Science",
    "araling panlipunan": "Araling Panlipunan",
    "ap": "Araling Panlipunan",
    "mapeh": "MAPEH",
    "values": "Values Education",
    "values education": "Values Education",
    "ede": "Values Education",
}

GRADE_WORDS: dict[str, int] = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

ROMAN_NUMERALS: dict[str, int] = {
    "i": 1, "ii": 2, "iii": 3, "iv": 4, "v": 5,
    "vi": 6, "vii": 7, "viii": 8, "ix": 9, "x": 10,
}

_FILLER_RE = re.compile(r"\b(coordinator|subjects|subject|teacher|handled)\b", re.IGNORECASE)
_GRADE_FILLER_RE = re.compile(r"\bgrade\s*\d+\b", re.IGNORECASE)
_CONNECTIVE_RE = re.compile(r"\band\b|[&/+;,]", re.IGNORECASE)
_DIGITS_RE = re.compile(r"(\d+)")
_ROMAN_RE = re.compile(r"\b(viii|vii|iii|ii|iv|vi|ix|i|v|x)\b")
_WORD_RE = re.compile(r"\b(" + "|".join(GRADE_WORDS) + r")\b")


def normalize_subject(raw: str | None) -> str | None:
    """Canonicalize a single subject string.

    >>> normalize_subject("mathematics teacher")
    'Math'
    >>> normalize_subject("reading comprehension")
    'Reading Comprehension'
    """
    if raw is None:
        return None
    cleaned = _FILLER_RE.sub("", raw)
    cleaned = _GRADE_FILLER_RE.sub("", cleaned)
    cleaned = re.sub(r"[-_]+", " ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if not cleaned:
        return None

    synonym = SUBJECT_SYNONYMS.get(cleaned.lower())
    if synonym:
        return synonym
    return " ".join(word[:1].upper() + word[1:].lower() for word in cleaned.split(" "))


def extract_subject_text(value: object) -> str | None:
    """Flatten a profile subject field (string, list or None) to one string."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        parts = [str(entry).strip() for entry in value if entry is not None]
        joined = ", ".join(part for part in parts if part)
        return joined or None
    text = str(value).strip()
    return text or None


def derive_allowed_subjects(raw: object) -> list[str]:
    """Split a multi-valued subject field into ordered, unique canonical names.

    >>> derive_allowed_subjects("English and Math / Filipino")
    ['English', 'Math', 'Filipino']
    """
    text = extract_subject_text(raw)
    if not text:
        return []

    subjects: list[str] = []
    for segment in _CONNECTIVE_RE.split(text):
        subject = normalize_subject(segment)
        if subject and subject not in subjects:
            subjects.append(subject)
    return subjects


def merge_subjects(*groups: Iterable[str]) -> list[str]:
    """Concatenate subject lists, keeping first-seen order and dropping repeats."""
    merged: list[str] = []
    for group in groups:
        for subject in group:
            if subject not in merged:
                merged.append(subject)
    return merged


def is_subject_locked(allowed_subjects: Iterable[str]) -> bool:
    """A coordinator with exactly one subject cannot pick another one."""
    return len(list(allowed_subjects)) == 1


def find_allowed(candidate: str | None, allowed_subjects: Iterable[str]) -> str | None:
    """Case-insensitive membership lookup returning the canonical member."""
    if not candidate:
        return None
    lowered = candidate.strip().lower()
    for subject in allowed_subjects:
        if subject.lower() == lowered:
            return subject
    return None


def sanitize_subject(value: str | None, allowed_subjects: Iterable[str]) -> str | None:
    """Force a requested subject into the coordinator's allowed set.

    Returns None only when there are no allowed subjects at all. A blank or
    unresolvable request falls back to the first allowed subject.
    """
    allowed = list(allowed_subjects)
    if not allowed:
        return None

    raw = value.strip() if isinstance(value, str) else ""
    if not raw:
        return allowed[0]

    match = find_allowed(raw, allowed)
    if match:
        return match

    for candidate in derive_allowed_subjects(raw):
        match = find_allowed(candidate, allowed)
        if match:
            return match
    return allowed[0]


def derive_grade_number(raw: str | None) -> int | None:
    """Pull a grade number out of digits, Roman numerals (i-x) or number words."""
    if not raw:
        return None
    text = raw.strip().lower()
    if not text:
        return None

    digits = _DIGITS_RE.search(text)
    if digits:
        return int(digits.group(1))
    roman = _ROMAN_RE.search(text)
    if roman:
        return ROMAN_NUMERALS[roman.group(1)]
    word = _WORD_RE.search(text)
    if word:
        return GRADE_WORDS[word.group(1)]
    return None


def normalize_grade_label(raw: object) -> str | None:
    """Normalize a grade field to ``"Grade {n}"``.

    >>> normalize_grade_label("grade iii")
    'Grade 3'
    >>> normalize_grade_label("Kinder")
    'Kinder'
    """
    if raw is None:
        return None
    text = re.sub(r"\s+", " ", str(raw)).strip()
    if not text:
        return None

    number = derive_grade_number(text)
    if number is not None:
        return f"Grade {number}"

    match = re.match(r"^grade\s*(.*)$", text, re.IGNORECASE)
    if match:
        remainder = match.group(1).strip()
        return f"Grade {remainder}" if remainder else "Grade"
    return text


def grades_match(left: str | None, right: str | None) -> bool:
    """Compare two grade labels after normalization; missing on either side matches."""
    left_label = normalize_grade_label(left)
    right_label = normalize_grade_label(right)
    if not left_label or not right_label:
        return True
    return left_label.lower() == right_label.lower()


def default_room_label(grade_label: str | None, fallback_grade: str = "Grade 3") -> str:
    label = grade_label or fallback_grade
    if label.lower().endswith("classroom"):
        return label
    return f"{label} Classroom"
