import html
import logging

from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup, CallbackQuery
from telegram.ext import ContextTypes

import database.database as db
from utils.models import Card, ContentType, DEFAULT_FOLDER_ID, now_ms
from utils.srs import format_interval
from utils.telegram_helpers import safe_edit_text
from utils.utils import render_html, truncate

CARDS_PER_PAGE = 8
FRONT_MAX = 30


def _payload(data: str, prefix: str) -> str:
    return data[len(prefix):]


def _card_label(card: Card) -> str:
    if card.front_type == ContentType.IMAGE:
        return '\U0001f5bc Image card'
    return truncate(card.front_content.replace('\n', ' '), FRONT_MAX)


async def _show_folder_detail(
    query: CallbackQuery,
    context: ContextTypes.DEFAULT_TYPE,
    folder_id: str,
    page: int = 0,
) -> None:
    folder = db.get_folder(folder_id)
    if folder is None:
        await safe_edit_text(
            query,
            "Folder not found.",
            reply_markup=InlineKeyboardMarkup([
                [InlineKeyboardButton('\U0001f4c2 Folders', callback_data='folders')]
            ]),
        )
        return

    cards = db.get_cards_in_folder(folder_id)
    total = len(cards)
    total_pages = max(1, (total + CARDS_PER_PAGE - 1) // CARDS_PER_PAGE)
    page = max(0, min(page, total_pages - 1))

    context.user_data['manage_folder_id'] = folder_id
    context.user_data['manage_page'] = page

    start = page * CARDS_PER_PAGE
    page_cards = cards[start:start + CARDS_PER_PAGE]

    header = f"<b>\U0001f4c1 {html.escape(folder.name)}</b> · {total} cards"
    if total_pages > 1:
        header += f"  ({page + 1}/{total_pages})"
    body = '' if total else '\n\n<i>This folder is empty</i>'

    buttons: list[list[InlineKeyboardButton]] = [
        [InlineKeyboardButton(_card_label(c), callback_data=f'card_info_{c.card_id}')]
        for c in page_cards
    ]

    if total_pages > 1:
        nav: list[InlineKeyboardButton] = []
        if page > 0:
            nav.append(InlineKeyboardButton('←', callback_data=f'folder_page_{page - 1}'))
        if page < total_pages - 1:
            nav.append(InlineKeyboardButton('→', callback_data=f'folder_page_{page + 1}'))
        buttons.append(nav)

    buttons.append([InlineKeyboardButton('▶ Study this folder', callback_data=f'folder_use_{folder_id}')])
    if folder_id != DEFAULT_FOLDER_ID:
        buttons.append([
            InlineKeyboardButton('✏️ Rename', callback_data=f'folder_rename_{folder_id}'),
            InlineKeyboardButton('\U0001f5d1️ Delete folder', callback_data=f'folder_del_{folder_id}'),
        ])
    buttons.append([InlineKeyboardButton('\U0001f4c2 Folders', callback_data='folders')])

    await safe_edit_text(query, header + body, reply_markup=InlineKeyboardMarkup(buttons))


async def folder_open(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    await _show_folder_detail(query, context, _payload(query.data, 'folder_open_'))


async def folder_cards_page(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    page = int(_payload(query.data, 'folder_page_'))
    folder_id = context.user_data.get('manage_folder_id', DEFAULT_FOLDER_ID)
    await _show_folder_detail(query, context, folder_id, page)


async def _back_to_folder(query: CallbackQuery, context: ContextTypes.DEFAULT_TYPE) -> None:
    folder_id = context.user_data.get('manage_folder_id', DEFAULT_FOLDER_ID)
    page = context.user_data.get('manage_page', 0)
    await _show_folder_detail(query, context, folder_id, page)


# ── Card actions ─────────────────────────────────────────────

def _due_label(card: Card) -> str:
    remaining = card.next_review_time - now_ms()
    if remaining <= 0:
        return 'due now'
    return f"in {format_interval(remaining / 60_000)}"


async def card_info(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    card = db.get_card(_payload(query.data, 'card_info_'))
    if card is None:
        await _back_to_folder(query, context)
        return

    def _side(content_type: ContentType, content: str) -> str:
        return '\U0001f5bc <i>image</i>' if content_type == ContentType.IMAGE else render_html(content)

    lines = [
        f"<b>Front:</b> {_side(card.front_type, card.front_content)}",
        f"<b>Back:</b> {_side(card.back_type, card.back_content)}",
    ]
    if card.phonetic:
        lines.append(f"<b>Phonetic:</b> [{html.escape(card.phonetic)}]")
    if card.tags:
        lines.append(f"<b>Tags:</b> {html.escape(', '.join(card.tags))}")
    lines.append(
        f"\n<i>Reviews in a row: {card.repetition} · ease {card.ease_factor:.2f} · {_due_label(card)}</i>"
    )

    await safe_edit_text(
        query,
        '\n'.join(lines),
        reply_markup=InlineKeyboardMarkup([
            [
                InlineKeyboardButton('↔️ Move', callback_data=f'card_move_{card.card_id}'),
                InlineKeyboardButton('\U0001f5d1️ Delete', callback_data=f'card_del_{card.card_id}'),
            ],
            [InlineKeyboardButton('← Back', callback_data='folder_back')],
        ]),
    )


async def folder_back(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    await _back_to_folder(query, context)


async def card_delete_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    card_id = _payload(query.data, 'card_del_')

    await safe_edit_text(
        query,
        "\U0001f5d1️ Delete this card?\n<i>This cannot be undone.</i>",
        reply_markup=InlineKeyboardMarkup([
            [
                InlineKeyboardButton('Yes, delete', callback_data=f'card_delok_{card_id}'),
                InlineKeyboardButton('Cancel', callback_data=f'card_info_{card_id}'),
            ]
        ]),
    )


async def card_delete_yes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    db.delete_card(_payload(query.data, 'card_delok_'))
    await _back_to_folder(query, context)


async def card_move_entry(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    card_id = _payload(query.data, 'card_move_')
    context.user_data['moving_card_id'] = card_id
    current = context.user_data.get('manage_folder_id')

    buttons = [
        [InlineKeyboardButton(
            f"{'▶ ' if f.folder_id == current else ''}{f.name}",
            callback_data=f'card_moveto_{f.folder_id}',
        )]
        for f in db.get_all_folders()
    ]
    buttons.append([InlineKeyboardButton('Cancel', callback_data=f'card_info_{card_id}')])

    await safe_edit_text(query, "↔️ Move to which folder?", reply_markup=InlineKeyboardMarkup(buttons))


async def card_move_to(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()

    card_id = context.user_data.pop('moving_card_id', None)
    if card_id:
        folder_id = db.move_card(card_id, _payload(query.data, 'card_moveto_'))
        logging.info(f"Moved card {card_id} to folder {folder_id}")
    await _back_to_folder(query, context)


# ── Folder deletion ──────────────────────────────────────────

async def folder_delete_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    folder_id = _payload(query.data, 'folder_del_')

    folder = db.get_folder(folder_id)
    name = folder.name if folder else 'this folder'
    await safe_edit_text(
        query,
        f"\U0001f5d1️ Delete folder <b>{html.escape(name)}</b>?\n"
        "<i>Its cards move to the default folder.</i>",
        reply_markup=InlineKeyboardMarkup([
            [
                InlineKeyboardButton('Yes, delete', callback_data=f'folder_delok_{folder_id}'),
                InlineKeyboardButton('Cancel', callback_data=f'folder_open_{folder_id}'),
            ]
        ]),
    )


async def folder_delete_yes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    folder_id = _payload(query.data, 'folder_delok_')

    if folder_id == DEFAULT_FOLDER_ID:
        await _show_folder_detail(query, context, folder_id)
        return

    db.delete_folder(folder_id)
    context.user_data.pop('manage_folder_id', None)
    context.user_data.pop('manage_page', None)

    from handlers.folders import build_folders_markup
    header, markup = build_folders_markup()
    await safe_edit_text(query, header, reply_markup=markup)
