"""
Rules for the periodic reading reminders.

Each rule looks at one reader's shelf and yields at most one `Reminder`:
books still in progress, unread books in this month's reading list, and a
book finished in the last week that has no review yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

STATUS_READ = "Lu"
STATUS_READING = "En cours"
STATUS_TO_READ = "À lire"

REVIEW_WINDOW_DAYS = (1, 7)
MAX_TITLES = 3


@dataclass
class Reminder:
    kind: str
    title: str
    message: str
    link_id: Optional[str] = None
    detail: Dict[str, object] = field(default_factory=dict)

    def notification(self, email: str) -> dict:
        fields = {
            "created_by": email,
            "type": "milestone",
            "title": self.title,
            "message": self.message,
            "link_type": "book",
            "is_read": False,
        }
        if self.link_id is not None:
            fields["link_id"] = self.link_id
        return fields

    def summary(self, email: str) -> dict:
        return {"user": email, "type": self.kind, **self.detail}


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def _parse_date(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def in_progress_reminder(user_books: List[dict], books: Dict[str, dict]) -> Optional[Reminder]:
    reading = [ub for ub in user_books if ub.get("status") == STATUS_READING]
    if not reading:
        return None
    titles = [
        books[ub["book_id"]]["title"]
        for ub in reading
        if ub.get("book_id") in books and books[ub["book_id"]].get("title")
    ]
    more = "..." if len(reading) > MAX_TITLES else ""
    return Reminder(
        kind="in_progress",
        title="📖 Lectures en cours",
        message=(
            f"N'oubliez pas de continuer vos {_plural(len(reading), 'lecture')} "
            f"en cours : {', '.join(titles[:MAX_TITLES])}{more}"
        ),
        detail={"count": len(reading)},
    )


def reading_list_reminder(
    user_books: List[dict], reading_lists: List[dict], now: datetime
) -> Optional[Reminder]:
    current = next(
        (
            pal
            for pal in reading_lists
            if str(pal.get("month")) == str(now.month)
            and str(pal.get("year")) == str(now.year)
        ),
        None,
    )
    if not current or not current.get("book_ids"):
        return None

    to_read = [
        ub
        for ub in user_books
        if ub.get("book_id") in current["book_ids"]
        and ub.get("status") == STATUS_TO_READ
    ]
    if not to_read:
        return None
    return Reminder(
        kind="pal_reminder",
        title="📚 PAL du mois",
        message=(
            f"Il vous reste {_plural(len(to_read), 'livre')} à lire dans "
            f'votre PAL "{current.get("name")}"'
        ),
        detail={"count": len(to_read)},
    )


def review_reminder(
    user_books: List[dict], books: Dict[str, dict], now: datetime
) -> Optional[Reminder]:
    low, high = REVIEW_WINDOW_DAYS
    for ub in user_books:
        if ub.get("status") != STATUS_READ or ub.get("review"):
            continue
        finished = _parse_date(ub.get("end_date"))
        if finished is None:
            continue
        days = (now - finished).days
        if not low <= days <= high:
            continue

        # Only the first recently finished book is considered.
        book = books.get(ub.get("book_id"))
        if book is None:
            return None
        return Reminder(
            kind="review_reminder",
            title="✨ Livre terminé !",
            message=f'Vous avez terminé "{book.get("title")}" ! Ajoutez votre avis et votre note 📝',
            link_id=book.get("id"),
            detail={"book": book.get("title")},
        )
    return None


def reminders_for(
    user_books: List[dict],
    books: Dict[str, dict],
    reading_lists: List[dict],
    now: datetime,
) -> List[Reminder]:
    candidates = (
        in_progress_reminder(user_books, books),
        reading_list_reminder(user_books, reading_lists, now),
        review_reminder(user_books, books, now),
    )
    return [reminder for reminder in candidates if reminder is not None]
