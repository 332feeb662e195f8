import html
import logging
from typing import Any

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
from utils.constants import FolderState, FOLDER_NAME_MAX, MENU_BUTTON
from utils.models import now_ms
from utils.telegram_helpers import safe_edit_text, safe_send_text

FOLDERS_PER_PAGE = 6


def _folder_button(folder: dict[str, Any], current_id: str) -> InlineKeyboardButton:
    mark = "▶ " if folder['folder_id'] == current_id else ""
    due = folder['due_count']
    due_part = f"  ❗ {due} due" if due > 0 else ""
    label = f"{mark}\U0001f4c1 {folder['folder_name']} · {folder['card_count']}{due_part}"
    return InlineKeyboardButton(label, callback_data=f"folder_open_{folder['folder_id']}")


def build_folders_markup(page: int = 0) -> tuple[str, InlineKeyboardMarkup]:
    folders = db.get_folders_with_stats(now_ms())
    current_id = db.get_current_folder_id()

    total_pages = max(1, (len(folders) + FOLDERS_PER_PAGE - 1) // FOLDERS_PER_PAGE)
    page = max(0, min(page, total_pages - 1))
    start = page * FOLDERS_PER_PAGE

    if total_pages > 1:
        header = f"\U0001f4c2 <b>Folders</b> ({page + 1}/{total_pages})"
    else:
        header = "\U0001f4c2 <b>Folders</b>"

    buttons: list[list[InlineKeyboardButton]] = [
        [_folder_button(f, current_id)] for f in folders[start:start + FOLDERS_PER_PAGE]
    ]

    if total_pages > 1:
        nav: list[InlineKeyboardButton] = []
        if page > 0:
            nav.append(InlineKeyboardButton("←", callback_data=f'folders_page_{page - 1}'))
        if page < total_pages - 1:
            nav.append(InlineKeyboardButton("→", callback_data=f'folders_page_{page + 1}'))
        buttons.append(nav)

    buttons.append([InlineKeyboardButton("➕ New folder", callback_data='new_folder')])
    buttons.append(MENU_BUTTON)

    return header, InlineKeyboardMarkup(buttons)


async def folders_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    header, markup = build_folders_markup()
    await safe_edit_text(query, header, reply_markup=markup)


async def folders_page(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    page = int(query.data.split('_')[2])  # folders_page_N
    header, markup = build_folders_markup(page)
    await safe_edit_text(query, header, reply_markup=markup)


async def folders_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/folders slash command — send a fresh folder list."""
    header, markup = build_folders_markup()
    await safe_send_text(update.message, header, reply_markup=markup)


async def switch_folder(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Make a folder the one that New Card, Review and Export work on."""
    query = update.callback_query
    await query.answer()

    folder_id = query.data.split('_', 2)[2]  # folder_use_<id>
    if db.get_folder(folder_id) is None:
        header, markup = build_folders_markup()
        await safe_edit_text(query, f"⚠️ Folder not found.\n\n{header}", reply_markup=markup)
        return

    db.set_current_folder_id(folder_id)

    from handlers.start import build_main_menu
    text, markup = build_main_menu()
    await safe_edit_text(query, text, reply_markup=markup)


# ── Create / rename conversation ─────────────────────────────

def _validate_name(name: str, exclude_id: str | None = None) -> str | None:
    """Returns an error message, or None if the name is fine."""
    if not name:
        return "⚠️ Folder name can't be empty. Try again:"
    if len(name) > FOLDER_NAME_MAX:
        return f"⚠️ Too long — {FOLDER_NAME_MAX} characters max. Try again:"
    existing = db.get_folder_by_name(name)
    if existing and existing.folder_id != exclude_id:
        return f"⚠️ \"{html.escape(name)}\" already exists. Pick a different name:"
    return None


async def new_folder_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    await safe_edit_text(query, "✏️ Name for the new folder:")
    return FolderState.NAMING_FOLDER


async def create_folder(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    name = (update.message.text or '').strip()

    error = _validate_name(name)
    if error:
        await safe_send_text(update.message, error)
        return FolderState.NAMING_FOLDER

    folder = db.create_folder(name)
    db.set_current_folder_id(folder.folder_id)

    await safe_send_text(
        update.message,
        f"✅ Folder <b>{html.escape(name)}</b> created and selected.",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton("\U0001f4dd New Card", callback_data='add_card')],
            MENU_BUTTON,
        ]),
    )
    return ConversationHandler.END


async def rename_folder_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    folder_id = query.data.split('_', 2)[2]  # folder_rename_<id>
    context.user_data['renaming_folder_id'] = folder_id

    await safe_edit_text(query, "✏️ New name for the folder:")
    return FolderState.RENAMING_FOLDER


async def rename_folder(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    name = (update.message.text or '').strip()
    folder_id = context.user_data.get('renaming_folder_id')

    if not folder_id:
        await safe_send_text(update.message, "⚠️ Session expired — please start over.")
        return ConversationHandler.END

    error = _validate_name(name, exclude_id=folder_id)
    if error:
        await safe_send_text(update.message, error)
        return FolderState.RENAMING_FOLDER

    db.rename_folder(folder_id, name)
    context.user_data.pop('renaming_folder_id', None)
    logging.info(f"Renamed folder {folder_id} to {name}")

    header, markup = build_folders_markup()
    await safe_send_text(update.message, f"✅ Renamed.\n\n{header}", reply_markup=markup)
    return ConversationHandler.END
