# ecole_study/domain/subjects.py
from typing import Dict

# Subject ids as stored in lessons.subject -> display name
SUBJECT_NAMES: Dict[str, str] = {
    "math": "Mathématiques",
    "french": "Français",
    "science": "Sciences",
    "history": "Histoire-Géo",
    "english": "Anglais",
    "arts": "Arts",
}


def subject_name(subject_id: str) -> str:
    return SUBJECT_NAMES.get(subject_id, subject_id)
