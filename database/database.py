import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Iterable

from database.schema import folder_schema, card_schema, settings_schema
from config import DB_PATH
from utils.models import (
    Card, Folder, SrsState, DEFAULT_FOLDER_ID, DEFAULT_FOLDER_NAME,
    card_from_record, folder_from_record, new_id, now_ms,
)

CURRENT_FOLDER_KEY = 'current_folder_id'


# SETTINGS COMMANDS =========================================

def get_setting(key, default=None):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT value FROM settings WHERE key = ?', (key,))
        row = cursor.fetchone()
        if row and row['value'] is not None:
            return row['value']
        return default


def set_setting(key, value):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            'INSERT INTO settings (key, value) VALUES (?, ?) '
            'ON CONFLICT(key) DO UPDATE SET value = excluded.value',
            (key, value)
        )


def get_current_folder_id():
    """The folder the user is studying. Falls back to default if it was deleted."""
    folder_id = get_setting(CURRENT_FOLDER_KEY, DEFAULT_FOLDER_ID)
    if folder_id != DEFAULT_FOLDER_ID and get_folder(folder_id) is None:
        return DEFAULT_FOLDER_ID
    return folder_id


def set_current_folder_id(folder_id):
    set_setting(CURRENT_FOLDER_KEY, folder_id)
    logging.info(f"Switched current folder to {folder_id}")


# FOLDERS COMMANDS ==========================================

def create_folder(name, now=None):
    folder = Folder(folder_id=new_id(), name=name, created_at=now if now is not None else now_ms())
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            'INSERT INTO folders (folder_id, folder_name, created_at) VALUES (?, ?, ?)',
            (folder.folder_id, folder.name, folder.created_at)
        )
    logging.info(f"Created folder {folder.folder_id}: {name}")
    return folder


def get_folder(folder_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT * FROM folders WHERE folder_id = ?', (folder_id,))
        row = cursor.fetchone()
        if row:
            return folder_from_record(dict(row))
        return None


def get_folder_by_name(name):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT * FROM folders WHERE folder_name = ?', (name,))
        row = cursor.fetchone()
        if row:
            return folder_from_record(dict(row))
        return None


def get_all_folders():
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            'SELECT * FROM folders ORDER BY folder_id != ?, created_at, rowid',
            (DEFAULT_FOLDER_ID,)
        )
        return [folder_from_record(dict(row)) for row in cursor.fetchall()]


def get_folders_with_stats(now):
    """All folders with card count and due count in a single query."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """SELECT f.folder_id, f.folder_name,
                      COUNT(c.card_id) AS card_count,
                      SUM(CASE WHEN c.next_review_time <= ? THEN 1 ELSE 0 END) AS due_count
               FROM folders f
               LEFT JOIN cards c ON c.folder_id = f.folder_id
               GROUP BY f.folder_id
               ORDER BY f.folder_id != ?, f.created_at, f.rowid
            """,
            (now, DEFAULT_FOLDER_ID)
        )
        return [
            {**dict(row), 'due_count': row['due_count'] or 0}
            for row in cursor.fetchall()
        ]


def rename_folder(folder_id, name):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            'UPDATE folders SET folder_name = ? WHERE folder_id = ?',
            (name, folder_id)
        )


def delete_folder(folder_id):
    """Delete a folder. Its cards move to the default folder."""
    if folder_id == DEFAULT_FOLDER_ID:
        raise ValueError("The default folder can't be deleted")

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            'UPDATE cards SET folder_id = ? WHERE folder_id = ?',
            (DEFAULT_FOLDER_ID, folder_id)
        )
        moved = cursor.rowcount
        cursor.execute('DELETE FROM folders WHERE folder_id = ?', (folder_id,))
    logging.info(f"Deleted folder {folder_id}, moved {moved} cards to default")
    return moved


# CARDS COMMANDS ============================================

def _card_params(card: Card) -> tuple:
    return (
        card.card_id, card.folder_id,
        card.front_type.value, card.front_content,
        card.back_type.value, card.back_content,
        card.phonetic, json.dumps(list(card.tags), ensure_ascii=False),
        card.interval, card.repetition, card.ease_factor, card.next_review_time,
        card.created_at,
    )


_INSERT_CARD = (
    """INSERT INTO cards (card_id, folder_id, front_type, front_content,
                          back_type, back_content, phonetic, tags,
                          interval, repetition, ease_factor, next_review_time,
                          created_at)
       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """
)


def save_card(card):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(_INSERT_CARD, _card_params(card))
    logging.info(f"Saved card {card.card_id} in folder {card.folder_id}")


def save_cards(cards: Iterable[Card]):
    params = [_card_params(c) for c in cards]
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.executemany(_INSERT_CARD, params)
    logging.info(f"Saved {len(params)} cards")
    return len(params)


def _row_to_card(row: sqlite3.Row) -> Card:
    record: dict[str, Any] = dict(row)
    try:
        record['tags'] = json.loads(record.get('tags') or '[]')
    except json.JSONDecodeError:
        record['tags'] = []
    return card_from_record(record)


def get_card(card_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT * FROM cards WHERE card_id = ?', (card_id,))
        row = cursor.fetchone()
        if row:
            return _row_to_card(row)
        return None


def get_all_cards():
    """The whole collection, in insertion order."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT * FROM cards ORDER BY position')
        return [_row_to_card(row) for row in cursor.fetchall()]


def get_cards_in_folder(folder_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT * FROM cards WHERE folder_id = ? ORDER BY position', (folder_id,))
        return [_row_to_card(row) for row in cursor.fetchall()]


def delete_card(card_id):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('DELETE FROM cards WHERE card_id = ?', (card_id,))
        logging.info(f"Deleted card {card_id}")
        return cursor.rowcount > 0


def move_card(card_id, folder_id):
    """Move a card. An unknown folder falls back to the default folder."""
    if folder_id != DEFAULT_FOLDER_ID and get_folder(folder_id) is None:
        logging.warning(f"Folder {folder_id} not found, moving card {card_id} to default")
        folder_id = DEFAULT_FOLDER_ID

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('UPDATE cards SET folder_id = ? WHERE card_id = ?', (folder_id, card_id))
    return folder_id


def update_card_srs(card_id, state: SrsState):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """UPDATE cards
               SET interval = ?, repetition = ?, ease_factor = ?, next_review_time = ?
               WHERE card_id = ?
            """,
            (state.interval, state.repetition, state.ease_factor, state.next_review_time, card_id)
        )


# STATS COMMANDS ============================================

def get_card_stats(now, folder_id=None):
    query = (
        """SELECT
               COUNT(*) AS total,
               SUM(COALESCE(repetition, 0) > 0) AS learned,
               SUM(COALESCE(next_review_time, 0) <= ?) AS due
           FROM cards
        """
    )
    params: tuple = (now,)
    if folder_id is not None:
        query += ' WHERE folder_id = ?'
        params = (now, folder_id)

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(query, params)
        row = cursor.fetchone()
        return {k: (row[k] or 0) for k in row.keys()}


def get_forecast(now, days=7):
    """Upcoming review counts per local day, for the next `days` days."""
    end = now + days * 24 * 60 * 60 * 1000
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """SELECT next_review_time FROM cards
               WHERE next_review_time > ? AND next_review_time <= ?
            """,
            (now, end)
        )
        counts: dict[str, int] = {}
        for row in cursor.fetchall():
            day = datetime.fromtimestamp(row['next_review_time'] / 1000).date().isoformat()
            counts[day] = counts.get(day, 0) + 1

    today = datetime.fromtimestamp(now / 1000).date()
    return [
        {'day': (today + timedelta(d)).isoformat(), 'count': counts.get((today + timedelta(d)).isoformat(), 0)}
        for d in range(1, days + 1)
    ]


# LEGACY IMPORT =============================================

def import_records(card_records, folder_records=()):
    """
    Load cards/folders in the old app's backup layout (camelCase records).

    Records missing SRS fields come in as never-reviewed cards. Cards whose
    folder doesn't exist land in the default folder. Existing ids are replaced.
    """
    folders = [
        folder_from_record(r) for r in folder_records
        if r.get('id') or r.get('folder_id')
    ]
    folders = [f for f in folders if f.folder_id != DEFAULT_FOLDER_ID]

    with get_db() as conn:
        cursor = conn.cursor()
        for folder in folders:
            cursor.execute(
                'INSERT OR REPLACE INTO folders (folder_id, folder_name, created_at) VALUES (?, ?, ?)',
                (folder.folder_id, folder.name, folder.created_at)
            )

        cursor.execute('SELECT folder_id FROM folders')
        known = {row['folder_id'] for row in cursor.fetchall()}

        cards = []
        for record in card_records:
            card = card_from_record(record)
            if card.folder_id not in known:
                card = card.moved_to(DEFAULT_FOLDER_ID)
            cards.append(card)

        cursor.executemany(
            _INSERT_CARD.replace('INSERT INTO', 'INSERT OR REPLACE INTO'),
            [_card_params(c) for c in cards]
        )

    logging.info(f"Imported {len(cards)} cards and {len(folders)} folders")
    return len(cards)


# DB CONNECTION =============================================

@contextmanager
def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    with get_db() as conn:
        conn.execute(folder_schema)
        conn.execute(card_schema)
        conn.execute(settings_schema)
        conn.execute(
            'INSERT OR IGNORE INTO folders (folder_id, folder_name, created_at) VALUES (?, ?, ?)',
            (DEFAULT_FOLDER_ID, DEFAULT_FOLDER_NAME, now_ms())
        )
