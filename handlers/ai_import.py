import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
from config import GEMINI_API_KEY, GEMINI_MODEL
from utils.ai_import import AiImportError, MAX_WORDS, draft_to_card, generate_cards
from utils.constants import ImportState, MENU_BUTTON
from utils.models import now_ms
from utils.telegram_helpers import safe_edit_text, safe_send_text
from utils.utils import parse_word_list, render_html

PREVIEW_MAX = 15


async def ai_import_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    if not GEMINI_API_KEY:
        await safe_edit_text(
            query,
            "⚠️ AI import needs <code>GEMINI_API_KEY</code> in the bot's .env file.",
            reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
        )
        return ConversationHandler.END

    await safe_edit_text(
        query,
        "✨ <b>AI Import</b>\n\n"
        f"Send up to {MAX_WORDS} words or phrases — one per line or comma-separated.\n"
        "I'll add meanings, pronunciation and an example for each.",
        reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
    )
    return ImportState.AWAITING_WORDS


async def get_words(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    words = parse_word_list(update.message.text or '')
    if not words:
        await safe_send_text(update.message, "⚠️ No words found. Send a list:")
        return ImportState.AWAITING_WORDS

    await safe_send_text(update.message, f"⏳ Generating {min(len(words), MAX_WORDS)} cards...")

    try:
        drafts = await generate_cards(words, GEMINI_API_KEY, GEMINI_MODEL)
    except AiImportError as e:
        logging.warning(f"AI import failed: {e}")
        await safe_send_text(
            update.message,
            f"⚠️ AI error: {html.escape(str(e))}\n\nSend the list again or go back to the menu.",
            reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
        )
        return ImportState.AWAITING_WORDS

    if not drafts:
        await safe_send_text(update.message, "⚠️ The AI returned no usable cards. Try other words:")
        return ImportState.AWAITING_WORDS

    context.user_data['import_drafts'] = drafts

    lines = []
    for draft in drafts[:PREVIEW_MAX]:
        phonetic = f" <i>[{html.escape(draft.phonetic)}]</i>" if draft.phonetic else ''
        lines.append(f"• <b>{html.escape(draft.front)}</b>{phonetic} — {render_html(draft.back)}")
        if draft.example:
            lines.append(f"   <i>{render_html(draft.example)}</i>")
    if len(drafts) > PREVIEW_MAX:
        lines.append(f"<i>…and {len(drafts) - PREVIEW_MAX} more</i>")

    folder = db.get_folder(db.get_current_folder_id())
    await safe_send_text(
        update.message,
        f"<b>\U0001f4cb {len(drafts)} cards ready</b>\n\n" + '\n'.join(lines) +
        f"\n\n<i>\U0001f4c1 {html.escape(folder.name) if folder else '—'}</i>",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton(f"✅ Add {len(drafts)} cards", callback_data='import_confirm')],
            [InlineKeyboardButton("✖ Cancel", callback_data='import_cancel')],
        ]),
    )
    return ImportState.CONFIRMING


async def confirm_import(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    drafts = context.user_data.pop('import_drafts', None)
    if not drafts:
        await safe_edit_text(
            query,
            "⚠️ Session expired — please start over.",
            reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
        )
        return ConversationHandler.END

    folder_id = db.get_current_folder_id()
    now = now_ms()
    count = db.save_cards(draft_to_card(d, folder_id, now) for d in drafts)

    await safe_edit_text(
        query,
        f"\U0001f389 Added {count} cards!",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton('▶ Review', callback_data='review')],
            MENU_BUTTON,
        ]),
    )
    return ConversationHandler.END


async def cancel_import(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data.pop('import_drafts', None)

    from handlers.start import build_main_menu
    text, markup = build_main_menu()

    if update.callback_query:
        await update.callback_query.answer()
        await safe_edit_text(update.callback_query, text, reply_markup=markup)
    else:
        await safe_send_text(update.message, text, reply_markup=markup)
    return ConversationHandler.END
