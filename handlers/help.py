from telegram import Update, InlineKeyboardMarkup
from telegram.ext import ContextTypes

from utils.constants import MENU_BUTTON
from utils.telegram_helpers import safe_edit_text, safe_send_text


HELP_TEXT = (
    "<b>❓ How it works</b>\n\n"
    "1. Send text or a photo — I'll make a card\n"
    "2. Use <code>front | back</code> or two lines for both sides\n"
    "3. ✨ AI Import turns a word list into cards with examples\n"
    "4. Hit Review when cards are due and rate each one\n\n"
    "\U0001f534 Again — see it again in 10 min\n"
    "\U0001f7e0 Hard — a little later\n"
    "\U0001f7e2 Good — 1 day, then 2.5× longer each time\n"
    "\U0001f535 Easy — 2 days, then grows with your ease\n"
    "\U0001f5d1 Delete — remove the card for good\n\n"
    "\U0001f4e4 Export sends the current folder as an Anki text file.\n"
    "/restore imports a JSON backup from the old app."
)

_MARKUP = InlineKeyboardMarkup([MENU_BUTTON])


async def help_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    await safe_edit_text(query, HELP_TEXT, reply_markup=_MARKUP)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await safe_send_text(update.message, HELP_TEXT, reply_markup=_MARKUP)
