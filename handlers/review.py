import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup, CallbackQuery
from telegram.ext import ContextTypes, ConversationHandler

import database.database as db
from utils.constants import ReviewState, MENU_BUTTON
from utils.models import Card, ContentType, now_ms
from utils.review_queue import ReviewQueue
from utils.srs import Rating, apply_rating, schedule_all_ratings, format_interval, AGAIN, HARD, GOOD, EASY
from utils.telegram_helpers import safe_edit_text, safe_send_text, safe_send_photo, safe_delete
from utils.utils import render_html


async def review_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Entry point: user clicks 'Review'. Snapshots the due set for this session."""
    query = update.callback_query
    await query.answer()

    folder_id = db.get_current_folder_id()
    queue = ReviewQueue.start(db.get_all_cards(), folder_id, now_ms())

    if queue.finished:
        await safe_edit_text(
            query,
            "✨ Nothing due in this folder — you're all caught up!",
            reply_markup=InlineKeyboardMarkup([MENU_BUTTON])
        )
        return ConversationHandler.END

    context.user_data['review_queue'] = queue
    logging.info(f"Review session started: {queue.total} cards in folder {folder_id}")

    count = queue.total
    await safe_edit_text(query, f"\U0001f9e0 {count} card{'s' if count != 1 else ''} to review")
    return await _show_front(query, context)


async def review_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/review slash command — sends a message with a Review button."""
    folder_id = db.get_current_folder_id()
    count = db.get_card_stats(now_ms(), folder_id=folder_id)['due']

    if count == 0:
        await safe_send_text(update.message, "✨ Nothing due — you're all caught up!")
        return

    await safe_send_text(
        update.message,
        f"\U0001f9e0 {count} card{'s' if count != 1 else ''} due",
        reply_markup=InlineKeyboardMarkup([
            [InlineKeyboardButton('▶ Review', callback_data='review')]
        ]),
    )


async def show_answer(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User taps 'Show answer' — reveal the back plus rating buttons."""
    query = update.callback_query
    await query.answer()

    queue: ReviewQueue | None = context.user_data.get('review_queue')
    if queue is None or queue.finished:
        return await _finish_review(query, context)

    card = queue.head
    markup = InlineKeyboardMarkup(_build_rating_buttons(card))
    footer = f"{queue.position}/{queue.total}"

    if card.back_type == ContentType.IMAGE:
        await _send_image(query.message, card.back_content, footer, markup)
        return ReviewState.RATING

    text = f"{_front_text(card)}\n\n\U0001f4a1 {render_html(card.back_content)}\n\n{footer}"
    if card.front_type == ContentType.IMAGE:
        # Keep the image on screen; send the answer below it
        await safe_send_text(query.message, text, reply_markup=markup)
    else:
        await safe_edit_text(query, text, reply_markup=markup)

    return ReviewState.RATING


async def rate_card(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User rates the head card — persist, then drop it from the session queue."""
    query = update.callback_query
    await query.answer()

    rating = Rating.parse(query.data.split('_')[1])

    queue: ReviewQueue | None = context.user_data.get('review_queue')
    if queue is None or queue.finished:
        return await _finish_review(query, context)

    head = queue.head

    if not rating.schedulable:
        db.delete_card(head.card_id)
        logging.info(f"Card {head.card_id}: deleted during review")
    else:
        # Re-read so the rating applies to the stored state, not the snapshot
        card = db.get_card(head.card_id)
        if card is None:
            logging.warning(f"Card {head.card_id} disappeared mid-session")
        else:
            updated = apply_rating(card, rating, now_ms())
            db.update_card_srs(card.card_id, updated.srs)
            logging.info(
                f"Card {card.card_id}: rated {rating.name.lower()}, "
                f"interval={updated.interval:.1f}m, ease={updated.ease_factor:.2f}"
            )

    queue = queue.record(rating) if rating.schedulable else queue.advance()
    context.user_data['review_queue'] = queue

    if queue.finished:
        return await _finish_review(query, context)

    # Photos can't be edited into text, so always move on with a fresh message
    if head.front_type == ContentType.IMAGE or head.back_type == ContentType.IMAGE:
        await safe_delete(query.message)
        return await _show_front_in_chat(query.message.chat_id, context)

    return await _show_front(query, context, edit=True)


async def cancel_review(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """User stops mid-review. Works for both callback button and /cancel command."""
    queue: ReviewQueue | None = context.user_data.pop('review_queue', None)
    rated = queue.rated if queue else 0

    text = f"⏹ Stopped after rating {rated} card{'s' if rated != 1 else ''}"
    markup = InlineKeyboardMarkup([MENU_BUTTON])

    if update.callback_query:
        await update.callback_query.answer()
        await safe_edit_text(update.callback_query, text, reply_markup=markup)
    else:
        await safe_send_text(update.message, text, reply_markup=markup)

    return ConversationHandler.END


# ============================================================
# Private helpers
# ============================================================

IMAGE_PLACEHOLDER = "\U0001f5bc <i>image unavailable</i>"

_FRONT_BUTTONS = InlineKeyboardMarkup([
    [InlineKeyboardButton("\U0001f440 Show answer", callback_data='show_answer')],
    [InlineKeyboardButton("⏹ Stop", callback_data='cancel_review')]
])


async def _send_image(target, file_id: str, caption: str, markup: InlineKeyboardMarkup) -> None:
    """Send an image side; if Telegram rejects it, send a placeholder that keeps the buttons."""
    if await safe_send_photo(target, file_id, caption=caption, reply_markup=markup):
        return
    logging.warning(f"Image side could not be sent, showing placeholder: {file_id[:40]}")
    await safe_send_text(target, f"{IMAGE_PLACEHOLDER}\n\n{caption}", reply_markup=markup)


def _front_text(card: Card) -> str:
    if card.front_type == ContentType.IMAGE:
        return '\U0001f5bc'
    text = f"<b>{render_html(card.front_content)}</b>"
    if card.phonetic:
        text += f"\n<i>[{html.escape(card.phonetic)}]</i>"
    return text


async def _show_front(query: CallbackQuery, context: ContextTypes.DEFAULT_TYPE, edit: bool = False) -> int:
    queue: ReviewQueue = context.user_data['review_queue']
    card = queue.head
    progress = f"{queue.position}/{queue.total}"

    if card.front_type == ContentType.IMAGE:
        await _send_image(query.message, card.front_content, progress, _FRONT_BUTTONS)
    elif edit:
        await safe_edit_text(query, f"{_front_text(card)}\n\n{progress}", reply_markup=_FRONT_BUTTONS)
    else:
        await safe_send_text(query.message, f"{_front_text(card)}\n\n{progress}", reply_markup=_FRONT_BUTTONS)

    return ReviewState.SHOWING_FRONT


async def _show_front_in_chat(chat_id: int, context: ContextTypes.DEFAULT_TYPE) -> int:
    queue: ReviewQueue = context.user_data['review_queue']
    card = queue.head
    progress = f"{queue.position}/{queue.total}"
    target = (chat_id, context.bot)

    if card.front_type == ContentType.IMAGE:
        await _send_image(target, card.front_content, progress, _FRONT_BUTTONS)
    else:
        await safe_send_text(target, f"{_front_text(card)}\n\n{progress}", reply_markup=_FRONT_BUTTONS)

    return ReviewState.SHOWING_FRONT


def _build_rating_buttons(card: Card) -> list[list[InlineKeyboardButton]]:
    """Rating buttons with the interval each one would schedule."""
    results = schedule_all_ratings(card.srs, now_ms())
    return [
        [
            InlineKeyboardButton(
                f"\U0001f534 Again {format_interval(results[AGAIN].interval)}",
                callback_data=f'rate_{AGAIN.value}'
            ),
            InlineKeyboardButton(
                f"\U0001f7e0 Hard {format_interval(results[HARD].interval)}",
                callback_data=f'rate_{HARD.value}'
            ),
        ],
        [
            InlineKeyboardButton(
                f"\U0001f7e2 Good {format_interval(results[GOOD].interval)}",
                callback_data=f'rate_{GOOD.value}'
            ),
            InlineKeyboardButton(
                f"\U0001f535 Easy {format_interval(results[EASY].interval)}",
                callback_data=f'rate_{EASY.value}'
            ),
        ],
        [InlineKeyboardButton("\U0001f5d1 Delete", callback_data=f'rate_{Rating.DELETE.value}')],
    ]


async def _finish_review(query: CallbackQuery, context: ContextTypes.DEFAULT_TYPE) -> int:
    queue: ReviewQueue | None = context.user_data.pop('review_queue', None)
    total = queue.total if queue else 0
    recalled = queue.recalled if queue else 0

    text = f"\U0001f389 Session done! {recalled}/{total} recalled"
    markup = InlineKeyboardMarkup([
        [InlineKeyboardButton("\U0001f4dd New Card", callback_data='add_card'),
         InlineKeyboardButton("\U0001f3e0 Menu", callback_data='main_menu')]
    ])

    await safe_edit_text(query, text, reply_markup=markup)
    return ConversationHandler.END
