import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
from utils.models import now_ms
from utils.telegram_helpers import safe_edit_text, safe_send_text


def build_main_menu() -> tuple[str, InlineKeyboardMarkup]:
    """
    Returns (message_text, markup) for the main menu.
    Counts are for the current folder only.
    """
    folder_id = db.get_current_folder_id()
    folder = db.get_folder(folder_id)
    folder_name = html.escape(folder.name) if folder else '—'

    stats = db.get_card_stats(now_ms(), folder_id=folder_id)
    total = stats['total']
    due = stats['due']

    if total == 0:
        text = f"\U0001f4c1 <b>{folder_name}</b>\n\n<i>No cards yet — add your first one!</i>"
    elif due == 0:
        text = f"\U0001f4c1 <b>{folder_name}</b>\n\n\U0001f389 All caught up · <i>{total} cards</i>"
    else:
        text = f"\U0001f4c1 <b>{folder_name}</b>\n\n\U0001f9e0 <b>{due}</b> / {total} cards to review"

    review_label = f'▶ Review · {due} due' if due > 0 else '▶ Review'
    markup = InlineKeyboardMarkup([
        [
            InlineKeyboardButton('\U0001f4dd New Card', callback_data='add_card'),
            InlineKeyboardButton('✨ AI Import', callback_data='ai_import'),
        ],
        [InlineKeyboardButton(review_label, callback_data='review')],
        [
            InlineKeyboardButton('\U0001f4c2 Folders', callback_data='folders'),
            InlineKeyboardButton('\U0001f4e4 Export', callback_data='export'),
        ],
        [
            InlineKeyboardButton('\U0001f4ca Stats', callback_data='stats'),
            InlineKeyboardButton('❓ Help', callback_data='help'),
        ],
    ])

    return text, markup


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    logging.info("Started /start")

    name = update.effective_user.first_name or 'there'
    _, markup = build_main_menu()
    await safe_send_text(
        update.message,
        f"Hi {html.escape(name)} \U0001f423\n\n"
        "Send me words, sentences or photos and I'll turn them into flashcards, "
        "then quiz you right before you forget.",
        reply_markup=markup,
    )


_CONV_KEYS = (
    # add-card flow
    'cur_card', 'cur_folder_id',
    # review flow
    'review_queue',
    # folders / manage
    'renaming_folder_id', 'manage_folder_id', 'manage_page', 'moving_card_id',
    # ai import
    'import_drafts',
)


def reset_conversation_data(context: ContextTypes.DEFAULT_TYPE) -> None:
    for key in _CONV_KEYS:
        context.user_data.pop(key, None)


async def force_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """ConversationHandler fallback — abort current flow and show main menu."""
    reset_conversation_data(context)
    text, markup = build_main_menu()
    await safe_send_text(update.message, text, reply_markup=markup)
    return ConversationHandler.END


async def menu_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/menu — reset any stuck state and show a fresh main menu."""
    reset_conversation_data(context)
    text, markup = build_main_menu()
    await safe_send_text(update.message, text, reply_markup=markup)


async def main_menu(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Callback for every 'Menu' button. Also ends any conversation it is used in."""
    query = update.callback_query
    await query.answer()

    reset_conversation_data(context)
    text, markup = build_main_menu()
    await safe_edit_text(query, text, reply_markup=markup)
    return ConversationHandler.END
