import unittest
from datetime import datetime, timezone

from gateway import backups
from gateway.hooks import truncate
from gateway.reminders import (
    in_progress_reminder,
    reading_list_reminder,
    reminders_for,
    review_reminder,
)

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

BOOKS = {
    "b1": {"id": "b1", "title": "Dune"},
    "b2": {"id": "b2", "title": "Emma"},
    "b3": {"id": "b3", "title": "Ulysse"},
    "b4": {"id": "b4", "title": "Nana"},
}


class InProgressReminderTests(unittest.TestCase):
    def test_lists_at_most_three_titles(self):
        shelf = [{"book_id": b, "status": "En cours"} for b in ("b1", "b2", "b3", "b4")]
        reminder = in_progress_reminder(shelf, BOOKS)
        self.assertEqual(
            reminder.message,
            "N'oubliez pas de continuer vos 4 lectures en cours : Dune, Emma, Ulysse...",
        )
        self.assertEqual(reminder.summary("a@example.com")["count"], 4)

    def test_nothing_in_progress(self):
        self.assertIsNone(in_progress_reminder([{"book_id": "b1", "status": "Lu"}], BOOKS))


class ReadingListReminderTests(unittest.TestCase):
    def test_unread_books_of_the_current_month(self):
        shelf = [
            {"book_id": "b1", "status": "À lire"},
            {"book_id": "b2", "status": "Lu"},
        ]
        lists = [
            {"name": "Septembre", "month": 9, "year": 2026, "book_ids": ["b1"]},
            {"name": "Octobre", "month": 10, "year": 2026, "book_ids": ["b1", "b2"]},
        ]
        reminder = reading_list_reminder(shelf, lists, NOW)
        self.assertEqual(
            reminder.message, 'Il vous reste 1 livre à lire dans votre PAL "Octobre"'
        )

    def test_no_list_for_this_month(self):
        lists = [{"name": "Mai", "month": 5, "year": 2026, "book_ids": ["b1"]}]
        shelf = [{"book_id": "b1", "status": "À lire"}]
        self.assertIsNone(reading_list_reminder(shelf, lists, NOW))


class ReviewReminderTests(unittest.TestCase):
    def test_recently_finished_without_review(self):
        shelf = [{"book_id": "b2", "status": "Lu", "end_date": "2026-10-16"}]
        reminder = review_reminder(shelf, BOOKS, NOW)
        self.assertEqual(reminder.link_id, "b2")
        self.assertEqual(reminder.notification("a@example.com")["link_id"], "b2")
        self.assertEqual(reminder.summary("a@example.com")["book"], "Emma")

    def test_outside_window_or_reviewed(self):
        shelf = [
            {"book_id": "b1", "status": "Lu", "end_date": "2026-10-19T08:00:00Z"},
            {"book_id": "b2", "status": "Lu", "end_date": "2026-10-01"},
            {"book_id": "b3", "status": "Lu", "end_date": "2026-10-17", "review": "Top"},
            {"book_id": "b4", "status": "Lu", "end_date": "not a date"},
        ]
        self.assertIsNone(review_reminder(shelf, BOOKS, NOW))

    def test_all_rules_combined(self):
        shelf = [
            {"book_id": "b1", "status": "En cours"},
            {"book_id": "b2", "status": "Lu", "end_date": "2026-10-18"},
        ]
        kinds = [r.kind for r in reminders_for(shelf, BOOKS, [], NOW)]
        self.assertEqual(kinds, ["in_progress", "review_reminder"])


class SnapshotTests(unittest.TestCase):
    def test_collects_every_collection_by_owner(self):
        queries = []

        def fetch(kind, query):
            queries.append((kind, query))
            return [{"kind": kind}] if kind == "Quote" else []

        snapshot = backups.collect_user_data(fetch, "a@example.com", {"email": "a@example.com"})

        self.assertEqual(len(queries), len(backups.USER_COLLECTIONS))
        self.assertIn(("ChatMessage", {"sender_email": "a@example.com"}), queries)
        self.assertEqual(backups.count_items(snapshot), 1)
        self.assertEqual(
            backups.backup_name(NOW), "Sauvegarde 19/10/2026 09:00:00"
        )

    def test_truncate(self):
        self.assertEqual(truncate("abcdef", 4), "abc…")
        self.assertEqual(truncate("abc", 4), "abc")
        self.assertEqual(truncate(None, 4), "")


if __name__ == "__main__":
    unittest.main()
