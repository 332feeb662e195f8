import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
import handlers.flow_handlers as hand_flow
import utils.utils as utils
from utils.constants import AddCardState, MENU_BUTTON
from utils.models import new_card
from utils.telegram_helpers import safe_edit_text


async def add_card_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    context.user_data.pop('cur_card', None)
    folder = db.get_folder(db.get_current_folder_id())

    await safe_edit_text(
        query,
        "\U0001f4dd Send me text or a photo\n\n"
        "<i>Text: use <code>front | back</code> or two lines\n"
        "Photo: add a caption — it becomes the back side</i>\n\n"
        f"\U0001f4c1 {html.escape(folder.name) if folder else '—'}",
        reply_markup=InlineKeyboardMarkup([MENU_BUTTON]),
    )
    return AddCardState.AWAITING_CONTENT


async def save_card(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    cur_card = context.user_data.get('cur_card')
    if not cur_card or not cur_card.get('front') or not cur_card.get('back'):
        await safe_edit_text(
            query,
            "⚠️ Session expired — please start over.",
            reply_markup=InlineKeyboardMarkup([MENU_BUTTON])
        )
        return ConversationHandler.END

    folder_id = context.user_data.get('cur_folder_id') or db.get_current_folder_id()
    card = new_card(
        folder_id=folder_id,
        front_type=cur_card['front_type'],
        front_content=cur_card['front'],
        back_type=cur_card['back_type'],
        back_content=cur_card['back'],
    )

    logging.info("Saving card...")
    db.save_card(card)

    context.user_data.pop('cur_card', None)

    await safe_edit_text(
        query,
        "✔️ Saved! Send me another one",
        reply_markup=InlineKeyboardMarkup([MENU_BUTTON])
    )
    return AddCardState.AWAITING_CONTENT


async def change_folder(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    folders = [{'id': f.folder_id, 'name': f.name} for f in db.get_all_folders()]
    buttons = utils.get_buttons(folders, 'pick_folder')
    buttons.append([InlineKeyboardButton("← Back", callback_data='back')])

    await safe_edit_text(
        query,
        "\U0001f4c1 Save into which folder?",
        reply_markup=InlineKeyboardMarkup(buttons)
    )
    return AddCardState.AWAITING_FOLDER


async def folder_picked(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    folder_id = query.data.split('_', 2)[2]  # pick_folder_<id>
    context.user_data['cur_folder_id'] = folder_id

    await hand_flow.preview(query, context)
    return AddCardState.CONFIRMATION_PREVIEW


async def edit_card(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    context.user_data.pop('cur_card', None)
    await safe_edit_text(query, "✏️ Send the new content")
    return AddCardState.AWAITING_CONTENT
