"""
Safe wrappers for Telegram API calls.

Handlers go through these instead of calling query.edit_message_text or
bot.send_message directly, so a stale message or a network blip is logged
and the handler carries on.

All text is sent with parse_mode='HTML'. Card content must pass through
utils.utils.render_html() and folder names through html.escape() before
being embedded in a message.
"""

import io
import logging
from typing import Any

from telegram import CallbackQuery, InlineKeyboardMarkup, InputFile, Message
from telegram.error import BadRequest, Forbidden, TimedOut, NetworkError

logger = logging.getLogger(__name__)

# A target is a Message to reply to, or a (chat_id, bot) pair
Target = Message | tuple[int, Any]

_BOT_METHODS = {'text': 'send_message', 'photo': 'send_photo', 'document': 'send_document'}


async def safe_edit_text(
    query: CallbackQuery,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
    parse_mode: str = 'HTML',
) -> bool:
    """Edit the message behind a button press, or reply if it can't be edited."""
    try:
        await query.edit_message_text(text, reply_markup=reply_markup, parse_mode=parse_mode)
        return True
    except BadRequest as e:
        if "message is not modified" in str(e).lower():
            return True
        # Photo messages have no text to edit; so do deleted ones
        logger.warning(f"safe_edit_text BadRequest: {e}")
        return await _fallback_reply(query, text, reply_markup, parse_mode)
    except (TimedOut, NetworkError) as e:
        logger.warning(f"safe_edit_text network error: {e}")
        return False


async def _deliver(target: Target, kind: str, what: str, **kwargs: Any) -> bool:
    """
    Reply to a Message with `reply_<kind>`, or send to a (chat_id, bot) pair
    with the matching Bot method. API failures are logged and reported as False.
    """
    try:
        if isinstance(target, Message):
            await getattr(target, f'reply_{kind}')(**kwargs)
        else:
            chat_id, bot = target
            await getattr(bot, _BOT_METHODS[kind])(chat_id=chat_id, **kwargs)
        return True
    except Forbidden:
        logger.warning("Bot was blocked by user")
    except (BadRequest, TimedOut, NetworkError) as e:
        logger.warning(f"{what} failed: {e}")
    return False


async def safe_send_text(
    target: Target,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
    parse_mode: str = 'HTML',
) -> bool:
    return await _deliver(
        target, 'text', 'safe_send_text',
        text=text, reply_markup=reply_markup, parse_mode=parse_mode,
    )


async def safe_send_photo(
    target: Target,
    photo: str,
    caption: str | None = None,
    reply_markup: InlineKeyboardMarkup | None = None,
    parse_mode: str = 'HTML',
) -> bool:
    """Send an image side. `photo` is the stored file_id."""
    return await _deliver(
        target, 'photo', 'safe_send_photo',
        photo=photo, caption=caption, reply_markup=reply_markup, parse_mode=parse_mode,
    )


async def safe_send_document(
    target: Target,
    content: str,
    filename: str,
    caption: str | None = None,
) -> bool:
    """Send `content` as a UTF-8 text file (used by the Anki export)."""
    document = InputFile(io.BytesIO(content.encode('utf-8')), filename=filename)
    return await _deliver(
        target, 'document', 'safe_send_document',
        document=document, caption=caption, parse_mode='HTML',
    )


async def safe_delete(message: Message) -> bool:
    try:
        await message.delete()
        return True
    except (BadRequest, TimedOut, NetworkError):
        return False


async def _fallback_reply(
    query: CallbackQuery,
    text: str,
    reply_markup: InlineKeyboardMarkup | None,
    parse_mode: str = 'HTML',
) -> bool:
    try:
        await query.message.reply_text(text, reply_markup=reply_markup, parse_mode=parse_mode)
        return True
    except (BadRequest, Forbidden, TimedOut, NetworkError) as e:
        logger.warning(f"_fallback_reply also failed: {e}")
        return False
