"""
Moving cards in and out of the bot: Anki export and JSON restore.
"""

import html
import json
import logging

from telegram import Update, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
from utils.constants import RestoreState, MENU_BUTTON
from utils.export import export_anki, export_filename
from utils.telegram_helpers import safe_edit_text, safe_send_text, safe_send_document

RESTORE_MAX_BYTES = 20 * 1024 * 1024


async def export_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Send the current folder as an Anki plain-text file."""
    query = update.callback_query
    await query.answer()

    folder = db.get_folder(db.get_current_folder_id())
    cards = db.get_cards_in_folder(folder.folder_id)

    if not cards:
        await safe_edit_text(
            query,
            f"\U0001f4e4 <b>{html.escape(folder.name)}</b> has no cards to export.",
            reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
        )
        return

    ok = await safe_send_document(
        query.message,
        export_anki(cards),
        export_filename(folder),
        caption=(
            f"\U0001f4e4 {len(cards)} cards from <b>{html.escape(folder.name)}</b>\n"
            "<i>Anki: File → Import, then pick this file</i>"
        ),
    )
    logging.info(f"Exported {len(cards)} cards from folder {folder.folder_id} (sent={ok})")


def parse_backup(raw: bytes) -> tuple[list[dict], list[dict]]:
    """
    Accepts {"cards": [...], "folders": [...]} or the old app's
    {"moe_cards": ..., "moe_folders": ...}; values may themselves be
    JSON strings (as stored in localStorage). A bare list is cards only.
    """
    data = json.loads(raw.decode('utf-8-sig'))

    if isinstance(data, list):
        return [c for c in data if isinstance(c, dict)], []
    if not isinstance(data, dict):
        raise ValueError("backup must be a JSON object or list")

    def _section(*keys: str) -> list[dict]:
        for key in keys:
            value = data.get(key)
            if isinstance(value, str):
                value = json.loads(value)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
        return []

    return _section('cards', 'moe_cards'), _section('folders', 'moe_folders')


async def restore_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    await safe_send_text(
        update.message,
        "\U0001f4e5 Send the <code>.json</code> backup file.\n\n"
        "<i>Cards keep their review progress; old cards without it start fresh.</i>",
        reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
    )
    return RestoreState.AWAITING_FILE


async def restore_file(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    document = update.message.document
    if document.file_size and document.file_size > RESTORE_MAX_BYTES:
        await safe_send_text(update.message, "⚠️ That file is too big.")
        return RestoreState.AWAITING_FILE

    tg_file = await document.get_file()
    raw = bytes(await tg_file.download_as_bytearray())

    try:
        cards, folders = parse_backup(raw)
    except (ValueError, UnicodeDecodeError) as e:
        logging.warning(f"Unreadable backup: {e}")
        await safe_send_text(update.message, "⚠️ That doesn't look like a backup file. Try another:")
        return RestoreState.AWAITING_FILE

    count = db.import_records(cards, folders)

    await safe_send_text(
        update.message,
        f"✅ Restored {count} cards and {len(folders)} folders.",
        reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
    )
    return ConversationHandler.END
