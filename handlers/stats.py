from datetime import date
from typing import Any

from telegram import Update, InlineKeyboardMarkup
from telegram.ext import ContextTypes

import database.database as db
from utils.constants import MENU_BUTTON
from utils.models import now_ms
from utils.telegram_helpers import safe_edit_text, safe_send_text


def _forecast_lines(forecast: list[dict[str, Any]]) -> str:
    if not any(entry['count'] for entry in forecast):
        return "  Nothing scheduled"

    lines = []
    for entry in forecast:
        day = date.fromisoformat(entry['day'])
        day_label = day.strftime('%b %d')  # "Feb 18"
        count = entry['count']
        lines.append(f"  {day_label}  ·  {count} card{'s' if count != 1 else ''}")
    return '\n'.join(lines)


def build_stats_text() -> str:
    now = now_ms()
    stats = db.get_card_stats(now)
    forecast = db.get_forecast(now, days=7)
    return (
        f"\U0001f4ca <b>Stats</b> (all folders)\n\n"
        f"\U0001f4da Total: {stats['total']}\n"
        f"✅ Learned: {stats['learned']}\n"
        f"\U0001f514 Due now: {stats['due']}\n\n"
        f"\U0001f4c5 Next 7 days\n"
        f"{_forecast_lines(forecast)}"
    )


async def stats_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    await safe_edit_text(query, build_stats_text(), reply_markup=InlineKeyboardMarkup([MENU_BUTTON]))


async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/stats slash command — send a fresh stats message."""
    await safe_send_text(update.message, build_stats_text(), reply_markup=InlineKeyboardMarkup([MENU_BUTTON]))
