"""
Tests for database/database.py.

Uses a real SQLite file in a pytest tmp_path so every test gets an isolated DB.
No Telegram objects, no async — pure DB logic. The `tdb` fixture lives in conftest.py.
"""
import sqlite3
from datetime import datetime

import pytest

import database.database as db
from utils.models import DEFAULT_FOLDER_ID, SrsState, new_card

NOW = int(datetime(2024, 1, 10, 12, 0).timestamp() * 1000)
DAY_MS = 24 * 60 * 60 * 1000


# ── Helpers ───────────────────────────────────────────────────

def _raw(db_path: str, sql: str, params=()):
    """Run a raw query against the test DB and return fetchall."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    cur = conn.execute(sql, params)
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def _card(front='Tokyo', folder_id=DEFAULT_FOLDER_ID, due=0, repetition=0, **kwargs):
    c = new_card(folder_id, 'text', front, 'text', f'{front} back', now=NOW, **kwargs)
    return c.with_srs(SrsState(repetition=repetition, next_review_time=due))


# ── Init ──────────────────────────────────────────────────────

class TestInit:
    def test_default_folder_exists(self, tdb):
        folder = db.get_folder(DEFAULT_FOLDER_ID)
        assert folder is not None
        assert folder.name == 'Default'

    def test_init_is_idempotent(self, tdb):
        db.init_db()
        assert len(_raw(tdb, 'SELECT * FROM folders')) == 1


# ── Settings ──────────────────────────────────────────────────

class TestSettings:
    def test_get_missing_returns_default(self, tdb):
        assert db.get_setting('nope') is None
        assert db.get_setting('nope', 'x') == 'x'

    def test_set_overwrites(self, tdb):
        db.set_setting('k', 'a')
        db.set_setting('k', 'b')
        assert db.get_setting('k') == 'b'

    def test_current_folder_defaults(self, tdb):
        assert db.get_current_folder_id() == DEFAULT_FOLDER_ID

    def test_current_folder_roundtrip(self, tdb):
        f = db.create_folder('Verbs')
        db.set_current_folder_id(f.folder_id)
        assert db.get_current_folder_id() == f.folder_id

    def test_current_folder_falls_back_after_delete(self, tdb):
        f = db.create_folder('Verbs')
        db.set_current_folder_id(f.folder_id)
        db.delete_folder(f.folder_id)
        assert db.get_current_folder_id() == DEFAULT_FOLDER_ID


# ── Folders ───────────────────────────────────────────────────

class TestFolders:
    def test_create_and_get(self, tdb):
        f = db.create_folder('Verbs', now=5)
        got = db.get_folder(f.folder_id)
        assert got == f
        assert db.get_folder_by_name('Verbs') == f

    def test_get_nonexistent_returns_none(self, tdb):
        assert db.get_folder('missing') is None
        assert db.get_folder_by_name('missing') is None

    def test_default_listed_first(self, tdb):
        db.create_folder('A', now=1)
        db.create_folder('B', now=2)
        names = [f.name for f in db.get_all_folders()]
        assert names == ['Default', 'A', 'B']

    def test_rename(self, tdb):
        f = db.create_folder('Old')
        db.rename_folder(f.folder_id, 'New')
        assert db.get_folder(f.folder_id).name == 'New'

    def test_delete_moves_cards_to_default(self, tdb):
        f = db.create_folder('Verbs')
        db.save_cards([_card('a', f.folder_id), _card('b', f.folder_id)])
        moved = db.delete_folder(f.folder_id)
        assert moved == 2
        assert db.get_folder(f.folder_id) is None
        assert {c.folder_id for c in db.get_all_cards()} == {DEFAULT_FOLDER_ID}

    def test_default_cannot_be_deleted(self, tdb):
        with pytest.raises(ValueError):
            db.delete_folder(DEFAULT_FOLDER_ID)

    def test_folders_with_stats(self, tdb):
        f = db.create_folder('Verbs')
        db.save_cards([
            _card('a', f.folder_id, due=NOW - 1),
            _card('b', f.folder_id, due=NOW + DAY_MS),
            _card('c', DEFAULT_FOLDER_ID, due=NOW + DAY_MS),
        ])
        stats = {r['folder_id']: r for r in db.get_folders_with_stats(NOW)}
        assert stats[f.folder_id]['card_count'] == 2
        assert stats[f.folder_id]['due_count'] == 1
        assert stats[DEFAULT_FOLDER_ID]['card_count'] == 1
        assert stats[DEFAULT_FOLDER_ID]['due_count'] == 0

    def test_empty_folder_stats(self, tdb):
        rows = db.get_folders_with_stats(NOW)
        assert rows == [{'folder_id': DEFAULT_FOLDER_ID, 'folder_name': 'Default', 'card_count': 0, 'due_count': 0}]


# ── Cards ─────────────────────────────────────────────────────

class TestCards:
    def test_save_and_get(self, tdb):
        c = _card('猫', tags=['animal', 'n5'], phonetic='neko')
        db.save_card(c)
        assert db.get_card(c.card_id) == c

    def test_get_nonexistent_returns_none(self, tdb):
        assert db.get_card('missing') is None

    def test_all_cards_keep_insertion_order(self, tdb):
        cards = [_card(str(i)) for i in range(5)]
        for c in cards:
            db.save_card(c)
        assert [c.card_id for c in db.get_all_cards()] == [c.card_id for c in cards]

    def test_cards_in_folder(self, tdb):
        f = db.create_folder('Verbs')
        db.save_cards([_card('a', f.folder_id), _card('b')])
        assert [c.front_content for c in db.get_cards_in_folder(f.folder_id)] == ['a']

    def test_save_cards_returns_count(self, tdb):
        assert db.save_cards(_card(str(i)) for i in range(3)) == 3
        assert len(db.get_all_cards()) == 3

    def test_delete(self, tdb):
        c = _card()
        db.save_card(c)
        assert db.delete_card(c.card_id) is True
        assert db.get_card(c.card_id) is None
        assert db.delete_card(c.card_id) is False

    def test_move(self, tdb):
        f = db.create_folder('Verbs')
        c = _card()
        db.save_card(c)
        assert db.move_card(c.card_id, f.folder_id) == f.folder_id
        assert db.get_card(c.card_id).folder_id == f.folder_id

    def test_move_to_unknown_folder_falls_back(self, tdb):
        f = db.create_folder('Verbs')
        c = _card(folder_id=f.folder_id)
        db.save_card(c)
        assert db.move_card(c.card_id, 'ghost') == DEFAULT_FOLDER_ID
        assert db.get_card(c.card_id).folder_id == DEFAULT_FOLDER_ID

    def test_update_srs(self, tdb):
        c = _card()
        db.save_card(c)
        db.update_card_srs(c.card_id, SrsState(interval=18.0, repetition=2, ease_factor=2.35, next_review_time=NOW + 5))
        got = db.get_card(c.card_id)
        assert got.interval == 18.0
        assert got.repetition == 2
        assert got.ease_factor == 2.35
        assert got.next_review_time == NOW + 5
        assert got.front_content == c.front_content

    def test_real_valued_interval_survives(self, tdb):
        c = _card()
        db.save_card(c)
        db.update_card_srs(c.card_id, SrsState(interval=15.6, repetition=2, ease_factor=2.5, next_review_time=0))
        assert db.get_card(c.card_id).interval == pytest.approx(15.6)


# ── Stats ─────────────────────────────────────────────────────

class TestStats:
    def test_empty(self, tdb):
        assert db.get_card_stats(NOW) == {'total': 0, 'learned': 0, 'due': 0}

    def test_counts(self, tdb):
        f = db.create_folder('Verbs')
        db.save_cards([
            _card('a', due=0),
            _card('b', due=NOW + DAY_MS, repetition=1),
            _card('c', f.folder_id, due=NOW, repetition=3),
        ])
        assert db.get_card_stats(NOW) == {'total': 3, 'learned': 2, 'due': 2}
        assert db.get_card_stats(NOW, folder_id=f.folder_id) == {'total': 1, 'learned': 1, 'due': 1}

    def test_forecast(self, tdb):
        db.save_cards([
            _card('a', due=NOW + DAY_MS),
            _card('b', due=NOW + DAY_MS + 60_000),
            _card('c', due=NOW + 3 * DAY_MS),
            _card('d', due=NOW + 30 * DAY_MS),
            _card('e', due=NOW - DAY_MS),
        ])
        forecast = db.get_forecast(NOW, days=7)
        assert len(forecast) == 7
        assert forecast[0] == {'day': '2024-01-11', 'count': 2}
        assert forecast[2] == {'day': '2024-01-13', 'count': 1}
        assert sum(d['count'] for d in forecast) == 3


# ── Legacy import ─────────────────────────────────────────────

class TestImportRecords:
    def test_imports_cards_and_folders(self, tdb):
        count = db.import_records(
            [
                {'id': 'c1', 'folderId': 'f1', 'frontContent': 'a', 'backContent': 'b',
                 'interval': 1440, 'repetition': 1, 'easeFactor': 2.5, 'nextReviewTime': 7},
                {'id': 'c2', 'folderId': 'f1', 'frontContent': 'c', 'backContent': 'd'},
            ],
            [{'id': 'f1', 'name': 'Verbs', 'createdAt': 1}],
        )
        assert count == 2
        assert db.get_folder('f1').name == 'Verbs'
        c1 = db.get_card('c1')
        assert c1.folder_id == 'f1'
        assert c1.repetition == 1
        assert c1.next_review_time == 7
        c2 = db.get_card('c2')
        assert c2.repetition == 0
        assert c2.ease_factor == 2.5

    def test_unknown_folder_goes_to_default(self, tdb):
        db.import_records([{'id': 'c1', 'folderId': 'gone', 'frontContent': 'a', 'backContent': 'b'}])
        assert db.get_card('c1').folder_id == DEFAULT_FOLDER_ID

    def test_default_folder_not_overwritten(self, tdb):
        db.import_records([], [{'id': DEFAULT_FOLDER_ID, 'name': 'Renamed'}])
        assert db.get_folder(DEFAULT_FOLDER_ID).name == 'Default'

    def test_reimport_replaces(self, tdb):
        db.import_records([{'id': 'c1', 'frontContent': 'old', 'backContent': 'b'}])
        db.import_records([{'id': 'c1', 'frontContent': 'new', 'backContent': 'b'}])
        assert len(db.get_all_cards()) == 1
        assert db.get_card('c1').front_content == 'new'
