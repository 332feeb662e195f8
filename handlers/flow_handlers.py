import html
import logging

from telegram import Update, InlineKeyboardMarkup
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
import utils.utils as utils
from utils.constants import AddCardState, PREVIEW_BUTTONS, CARD_SIDE_MAX
from utils.models import ContentType
from utils.telegram_helpers import safe_edit_text, safe_send_text, safe_send_photo, safe_delete


async def get_content(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """First message of a new card: a photo (caption = back) or text."""
    logging.info("Got content")

    message = update.message
    if message.photo:
        parsed = utils.parse_photo(message.photo[-1], message.caption)
        context.user_data['cur_card'] = {
            'front': parsed['front'],
            'front_type': ContentType.IMAGE.value,
            'back': parsed['back'],
            'back_type': ContentType.TEXT.value,
        }
        if not parsed['back']:
            await _ask_for_back(message)
            return AddCardState.AWAITING_BACK
    else:
        parsed = utils.parse_text(message.text or '')

        if not parsed['front']:
            await safe_send_text(message, "⚠️ Card can't be empty. Send some text:")
            return AddCardState.AWAITING_CONTENT

        if len(parsed['front']) > CARD_SIDE_MAX or len(parsed['back']) > CARD_SIDE_MAX:
            await safe_send_text(
                message,
                f"⚠️ Too long — each side can be up to {CARD_SIDE_MAX} characters. Try again:"
            )
            return AddCardState.AWAITING_CONTENT

        context.user_data['cur_card'] = {
            'front': parsed['front'],
            'front_type': ContentType.TEXT.value,
            'back': parsed['back'],
            'back_type': ContentType.TEXT.value,
        }
        if not parsed['back']:
            await _ask_for_back(message)
            return AddCardState.AWAITING_BACK

    await preview(message, context)
    return AddCardState.CONFIRMATION_PREVIEW


async def get_back(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Second side, sent on its own as text or a photo."""
    message = update.message
    cur_card = context.user_data.get('cur_card')
    if not cur_card:
        await safe_send_text(message, "⚠️ Session expired — send the front again:")
        return AddCardState.AWAITING_CONTENT

    if message.photo:
        cur_card['back'] = message.photo[-1].file_id
        cur_card['back_type'] = ContentType.IMAGE.value
    else:
        back = (message.text or '').strip()
        if not back:
            await safe_send_text(message, "⚠️ The back can't be empty. Send text or a photo:")
            return AddCardState.AWAITING_BACK
        if len(back) > CARD_SIDE_MAX:
            await safe_send_text(
                message,
                f"⚠️ Too long — up to {CARD_SIDE_MAX} characters. Try again:"
            )
            return AddCardState.AWAITING_BACK
        cur_card['back'] = back
        cur_card['back_type'] = ContentType.TEXT.value

    await preview(message, context)
    return AddCardState.CONFIRMATION_PREVIEW


async def _ask_for_back(message) -> None:
    await safe_send_text(
        message,
        "\U0001f504 Now send the <b>back</b> side — text or a photo.\n\n"
        "<i>Tip: <code>front | back</code> does both in one message</i>"
    )


def _side_label(content_type: str, content: str) -> str:
    if content_type == ContentType.IMAGE.value:
        return '\U0001f5bc <i>image</i>'
    return utils.render_html(content) if content else '<i>empty</i>'


async def preview(message_or_query, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Works with both Message and CallbackQuery. Image fronts are previewed as a photo."""
    cur_card = context.user_data.get('cur_card', {})
    front_type = cur_card.get('front_type', ContentType.TEXT.value)

    folder_id = context.user_data.get('cur_folder_id') or db.get_current_folder_id()
    folder = db.get_folder(folder_id)
    folder_name = html.escape(folder.name) if folder else '—'
    markup = InlineKeyboardMarkup(PREVIEW_BUTTONS)

    back_label = _side_label(cur_card.get('back_type', 'text'), cur_card.get('back', ''))

    if front_type == ContentType.IMAGE.value:
        caption = (
            f"<b>\U0001f5bc Preview</b>\n\n"
            f"<b>Back:</b> {back_label}\n\n"
            f"<i>\U0001f4c1 {folder_name}</i>"
        )
        if hasattr(message_or_query, 'reply_photo'):
            await safe_send_photo(message_or_query, cur_card['front'], caption=caption, reply_markup=markup)
        else:
            await safe_send_photo(message_or_query.message, cur_card['front'], caption=caption, reply_markup=markup)
            await safe_delete(message_or_query.message)
    else:
        preview_text = (
            f"<b>\U0001f4cb Preview</b>\n\n"
            f"<b>Front:</b> {_side_label(front_type, cur_card.get('front', ''))}\n"
            f"<b>Back:</b> {back_label}\n\n"
            f"<i>\U0001f4c1 {folder_name}</i>"
        )
        if hasattr(message_or_query, 'reply_text'):
            await safe_send_text(message_or_query, preview_text, reply_markup=markup)
        else:
            await safe_edit_text(message_or_query, preview_text, reply_markup=markup)


async def back_to_preview(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    if not context.user_data.get('cur_card'):
        await safe_edit_text(query, "✏️ Send me text or a photo")
        return AddCardState.AWAITING_CONTENT

    await preview(query, context)
    return AddCardState.CONFIRMATION_PREVIEW


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data.pop('cur_card', None)
    context.user_data.pop('cur_folder_id', None)

    from handlers.start import build_main_menu
    text, markup = build_main_menu()

    if update.callback_query:
        await update.callback_query.answer()
        await safe_edit_text(update.callback_query, text, reply_markup=markup)
    else:
        await safe_send_text(update.message, text, reply_markup=markup)

    return ConversationHandler.END
