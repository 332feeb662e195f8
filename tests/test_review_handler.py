"""
Tests for handlers/review.py — the review session against a real temp DB.

Telegram objects are MagicMocks; Message mocks use spec=Message so the
safe_* helpers treat them as reply targets.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

from telegram import Message
from telegram.error import BadRequest
from telegram.ext import ConversationHandler

import database.database as db
import handlers.review as review
from utils.constants import ReviewState
from utils.models import DEFAULT_FOLDER_ID, card_from_record, new_card, now_ms
from utils.review_queue import ReviewQueue

DATA_URI = 'data:image/png;base64,iVBORw0KGgo='


# ── Helpers ───────────────────────────────────────────────────

def _message():
    message = MagicMock(spec=Message)
    message.chat_id = 1
    message.reply_text = AsyncMock()
    message.reply_photo = AsyncMock()
    message.delete = AsyncMock()
    return message


def _update(data=None):
    query = MagicMock()
    query.data = data
    query.answer = AsyncMock()
    query.edit_message_text = AsyncMock()
    query.message = _message()
    update = MagicMock()
    update.callback_query = query
    return update


def _context(queue=None):
    context = MagicMock()
    context.user_data = {} if queue is None else {'review_queue': queue}
    context.bot = MagicMock()
    return context


def _saved(*fronts):
    cards = [new_card(DEFAULT_FOLDER_ID, 'text', f, 'text', f'{f} back') for f in fronts]
    for c in cards:
        db.save_card(c)
    return cards


def _start(context):
    return asyncio.run(review.review_entry(_update('review'), context))


def _rate(context, rating):
    update = _update(f'rate_{rating}')
    return asyncio.run(review.rate_card(update, context)), update


def _callback_data(markup):
    return [b.callback_data for row in markup.inline_keyboard for b in row]


# ── Rating ────────────────────────────────────────────────────

class TestRateCard:
    def test_delete_removes_only_the_head(self, tdb, monkeypatch):
        first, second, third = _saved('a', 'b', 'c')
        scheduler = MagicMock(side_effect=AssertionError('scheduler called'))
        monkeypatch.setattr(review, 'apply_rating', scheduler)
        context = _context()

        assert _start(context) == ReviewState.SHOWING_FRONT
        state, _ = _rate(context, 0)

        assert state == ReviewState.SHOWING_FRONT
        scheduler.assert_not_called()
        assert db.get_card(first.card_id) is None
        assert db.get_card(second.card_id) == second
        assert db.get_card(third.card_id) == third
        assert context.user_data['review_queue'].head.card_id == second.card_id

    def test_good_on_new_card_persists_one_day(self, tdb):
        (card,) = _saved('a')
        context = _context()
        _start(context)

        state, update = _rate(context, 3)

        stored = db.get_card(card.card_id)
        assert stored.interval == 1440
        assert stored.repetition == 1
        assert stored.ease_factor == 2.5
        assert stored.next_review_time > now_ms()
        # Last card rated: session summary replaces the message
        assert state == ConversationHandler.END
        assert 'review_queue' not in context.user_data
        assert '1/1 recalled' in update.callback_query.edit_message_text.call_args.args[0]

    def test_card_added_mid_session_is_not_queued(self, tdb):
        first, second = _saved('a', 'b')
        context = _context()
        _start(context)

        (late,) = _saved('late')
        _rate(context, 3)

        queue = context.user_data['review_queue']
        assert queue.total == 2
        assert [c.card_id for c in queue.cards] == [second.card_id]
        assert late.card_id not in {c.card_id for c in queue.cards}
        assert db.get_card(late.card_id).repetition == 0


# ── Unsendable images ─────────────────────────────────────────

class TestImageFallback:
    def _queue(self, **record):
        card = card_from_record({'id': 'd1', 'frontContent': 'cat', 'backContent': 'neko', **record})
        return ReviewQueue.start([card], DEFAULT_FOLDER_ID, now_ms())

    def test_front_placeholder_keeps_buttons(self):
        context = _context(self._queue(frontType='image', frontContent=DATA_URI))
        update = _update('review')
        message = update.callback_query.message
        message.reply_photo.side_effect = BadRequest('Wrong remote file identifier specified')

        state = asyncio.run(review._show_front(update.callback_query, context))

        assert state == ReviewState.SHOWING_FRONT
        message.reply_photo.assert_awaited_once()
        message.reply_text.assert_awaited_once()
        kwargs = message.reply_text.call_args.kwargs
        assert kwargs['reply_markup'] is review._FRONT_BUTTONS
        assert review.IMAGE_PLACEHOLDER in kwargs['text']
        assert '1/1' in kwargs['text']

    def test_back_placeholder_keeps_rating_buttons(self):
        context = _context(self._queue(backType='image', backContent=DATA_URI))
        update = _update('show_answer')
        message = update.callback_query.message
        message.reply_photo.side_effect = BadRequest('Wrong remote file identifier specified')

        state = asyncio.run(review.show_answer(update, context))

        assert state == ReviewState.RATING
        message.reply_text.assert_awaited_once()
        kwargs = message.reply_text.call_args.kwargs
        assert review.IMAGE_PLACEHOLDER in kwargs['text']
        assert {'rate_0', 'rate_1', 'rate_2', 'rate_3', 'rate_4'} <= set(_callback_data(kwargs['reply_markup']))

    def test_sendable_image_has_no_placeholder(self):
        context = _context(self._queue(frontType='image', frontContent='AgACAgIAAxkBAAI'))
        update = _update('review')
        message = update.callback_query.message

        asyncio.run(review._show_front(update.callback_query, context))

        message.reply_photo.assert_awaited_once()
        assert message.reply_photo.call_args.kwargs['reply_markup'] is review._FRONT_BUTTONS
        message.reply_text.assert_not_called()


# ── Stopping ──────────────────────────────────────────────────

class TestCancelReview:
    def test_counts_rated_cards_only(self, tdb):
        _saved('a', 'b', 'c')
        context = _context()
        _start(context)
        _rate(context, 0)
        _rate(context, 1)

        update = _update('cancel_review')
        state = asyncio.run(review.cancel_review(update, context))

        assert state == ConversationHandler.END
        assert 'review_queue' not in context.user_data
        text = update.callback_query.edit_message_text.call_args.args[0]
        assert 'rating 1 card' in text
        assert 'rating 1 cards' not in text
