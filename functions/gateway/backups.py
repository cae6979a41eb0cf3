"""
User data snapshots, shared by the backup and export actions.

A snapshot holds the user's profile under `user_info` plus one list per
collection the user owns. Ownership is `created_by`, except for chat
messages, which are keyed by sender.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, List, Tuple

PROFILE_FIELDS = (
    "email",
    "full_name",
    "display_name",
    "profile_picture",
    "theme",
    "notification_preferences",
)

# (snapshot key, entity kind, owner field)
USER_COLLECTIONS: Tuple[Tuple[str, str, str], ...] = (
    ("user_books", "UserBook", "created_by"),
    ("reading_comments", "ReadingComment", "created_by"),
    ("friendships", "Friendship", "created_by"),
    ("shared_readings", "SharedReading", "created_by"),
    ("shared_reading_messages", "SharedReadingMessage", "created_by"),
    ("quotes", "Quote", "created_by"),
    ("fan_arts", "FanArt", "created_by"),
    ("nail_inspos", "NailInspo", "created_by"),
    ("custom_shelves", "CustomShelf", "created_by"),
    ("book_boyfriends", "BookBoyfriend", "created_by"),
    ("favorite_couples", "FavoriteCouple", "created_by"),
    ("reading_goals", "ReadingGoal", "created_by"),
    ("bingo_challenges", "BingoChallenge", "created_by"),
    ("reading_locations", "ReadingLocation", "created_by"),
    ("books_of_the_year", "BookOfTheYear", "created_by"),
    ("monthly_votes", "MonthlyBookVote", "created_by"),
    ("reading_lists", "ReadingList", "created_by"),
    ("book_series", "BookSeries", "created_by"),
    ("chat_rooms", "ChatRoom", "created_by"),
    ("chat_messages", "ChatMessage", "sender_email"),
    ("notifications", "Notification", "created_by"),
    ("wishlist_items", "SharedReadingWishlist", "created_by"),
)

USER_BACKUP_KIND = "UserBackup"

# Looks up the records of one kind matching an equality query.
Fetch = Callable[[str, dict], List[dict]]


def profile_of(record: dict, fields=PROFILE_FIELDS) -> dict:
    return {name: record.get(name) for name in fields}


def collect_user_data(fetch: Fetch, email: str, profile: dict) -> Dict[str, object]:
    """Snapshot of everything `email` owns, fetched one collection at a time."""
    snapshot: Dict[str, object] = {"user_info": profile}
    for key, kind, owner_field in USER_COLLECTIONS:
        snapshot[key] = fetch(kind, {owner_field: email})
    return snapshot


def count_items(snapshot: Dict[str, object]) -> int:
    """Number of records in the snapshot; the profile is not counted."""
    return sum(len(items) for items in snapshot.values() if isinstance(items, list))


def backup_name(now: datetime, label: str = "Sauvegarde") -> str:
    return f"{label} {now.strftime('%d/%m/%Y %H:%M:%S')}"


def backup_record(name: str, now: datetime, snapshot: Dict[str, object]) -> dict:
    return {
        "backup_name": name,
        "backup_date": now.isoformat(),
        "data_snapshot": snapshot,
        "entities_included": list(snapshot),
        "total_items": count_items(snapshot),
    }
