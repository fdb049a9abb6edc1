"""Quick-capture parser for one-line task entry.

Syntax (whitespace separated, any order):
    @name      attach context "name"
    #keyword   defer until today / tomorrow / weekend (next Saturday)
    !flag, !   flag the task
Everything else becomes the title.

Parsing has no side effects. Creating unknown contexts is up to the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

SATURDAY = 5
FLAG_TOKENS = {"!", "!flag"}


@dataclass
class CaptureDraft:
    """Structured result of parsing a capture line."""

    title: str
    context_names: list[str] = field(default_factory=list)
    flagged: bool = False
    defer_at: datetime | None = None


def resolve_date_keyword(keyword: str, now: datetime) -> datetime | None:
    """Instant for a #keyword, or None if the keyword is unknown."""
    match keyword.lower():
        case "today":
            return now
        case "tomorrow":
            return now + timedelta(days=1)
        case "weekend":
            days_ahead = (SATURDAY - now.weekday()) % 7 or 7
            return now + timedelta(days=days_ahead)
        case _:
            return None


def parse(text: str, now: datetime | None = None) -> CaptureDraft:
    """
    Parse a capture line into a draft.

    If nothing but keywords is typed, the whole input becomes the title so
    the entry is never dropped.
    """
    if not text or not text.strip():
        raise ValueError("Nothing to capture")
    now = now or datetime.now()

    words: list[str] = []
    contexts: list[str] = []
    flagged = False
    defer_at = None

    for token in text.split():
        if token in FLAG_TOKENS:
            flagged = True
        elif token.startswith("@") and len(token) > 1:
            name = token[1:]
            if name not in contexts:
                contexts.append(name)
        elif token.startswith("#") and (when := resolve_date_keyword(token[1:], now)):
            defer_at = when
        else:
            words.append(token)

    title = " ".join(words) or text.strip()
    return CaptureDraft(title=title, context_names=contexts, flagged=flagged, defer_at=defer_at)
