"""Theme splitting for study notes.

A note holds one theme per line, optionally bulleted, optionally in
``question : answer`` flashcard form. Themes are derived, never persisted
as text of their own; they are addressed by their position in the note.
"""

import enum
import re
from dataclasses import dataclass
from typing import List, Optional

FLASHCARD_SEPARATOR = " : "

_BULLET_RE = re.compile(r"^[-*•・]\s*")


class ThemeMode(str, enum.Enum):
    """Presentation branch for a theme, decided purely by note formatting."""

    FLASHCARD = "flashcard"  # self-graded recall
    QUIZ = "quiz"  # generated multiple-choice questions


@dataclass(frozen=True)
class Flashcard:
    question: str
    answer: Optional[str] = None

    @property
    def is_flashcard(self) -> bool:
        return self.answer is not None


@dataclass(frozen=True)
class Theme:
    index: int
    text: str

    @property
    def flashcard(self) -> Flashcard:
        return parse_flashcard(self.text)

    @property
    def mode(self) -> ThemeMode:
        return ThemeMode.FLASHCARD if self.flashcard.is_flashcard else ThemeMode.QUIZ


def split_themes(note: Optional[str]) -> List[str]:
    """Split a note into its ordered themes.

    Lines are trimmed, a single leading bullet glyph is removed and empty
    lines are dropped. Never returns an empty list: a note with no usable
    line yields the trimmed note itself (possibly ``""``) as its only theme.
    """
    raw = note or ""
    themes = []
    for line in raw.split("\n"):
        line = line.strip()
        if not line:
            continue
        line = _BULLET_RE.sub("", line, count=1).strip()
        if line:
            themes.append(line)

    if not themes:
        return [raw.strip()]
    return themes


def parse_flashcard(theme: str) -> Flashcard:
    """Interpret a theme as ``question : answer`` when it splits into exactly two parts."""
    parts = theme.split(FLASHCARD_SEPARATOR)
    if len(parts) == 2:
        return Flashcard(question=parts[0].strip(), answer=parts[1].strip())
    return Flashcard(question=theme)


def build_themes(note: Optional[str]) -> List[Theme]:
    """Return the note's themes with their positions."""
    return [Theme(index=i, text=text) for i, text in enumerate(split_themes(note))]
