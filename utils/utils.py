import html
import re

from telegram import InlineKeyboardButton, PhotoSize


def parse_photo(photo_obj: PhotoSize, caption: str | None = None) -> dict[str, str | bool]:
    """
    Stores the file_id so we can send the image back during review.
    The caption, if any, becomes the back side.
    """
    return {'front': photo_obj.file_id, 'back': (caption or '').strip(), 'is_photo': True}


def parse_text(content: str) -> dict[str, str]:
    """
    returns: {'front': str, 'back': str}
    """
    text = content.strip()

    if '|' in text:
        parts = text.split('|', 1)
        return {'front': parts[0].strip(), 'back': parts[1].strip()}

    if '\n' in text:
        lines = [l.strip() for l in text.split('\n') if l.strip()]
        if len(lines) >= 2:
            return {'front': lines[0], 'back': '\n'.join(lines[1:])}

    return {'front': text, 'back': ''}


def parse_word_list(text: str) -> list[str]:
    """Words for AI import: one per line or comma-separated, duplicates dropped."""
    words: list[str] = []
    for part in re.split(r'[\n,]+', text or ''):
        word = part.strip()
        if word and word not in words:
            words.append(word)
    return words


_ALLOWED_TAGS = ('b', 'i', 'u', 's')
_TAG_ALIASES = {'strong': 'b', 'em': 'i'}


def render_html(text: str) -> str:
    """
    Make card text safe for Telegram's HTML parse mode.

    AI output often arrives with escaped entities and <strong>/<em>; those are
    decoded and mapped to <b>/<i>. Everything except a few inline tags ends up
    escaped.
    """
    if not text:
        return ''

    decoded = text.replace('&lt;', '<').replace('&gt;', '>').replace('&amp;', '&')
    decoded = re.sub(r'<br\s*/?>', '\n', decoded, flags=re.IGNORECASE)

    def _alias(match: re.Match) -> str:
        slash, name = match.group(1), match.group(2).lower()
        return f"<{slash}{_TAG_ALIASES.get(name, name)}>"

    decoded = re.sub(r'<(/?)(strong|em)\b[^>]*>', _alias, decoded, flags=re.IGNORECASE)

    escaped = html.escape(decoded, quote=False)
    allowed = '|'.join(_ALLOWED_TAGS)
    return re.sub(
        rf'&lt;(/?)({allowed})&gt;',
        lambda m: f"<{m.group(1)}{m.group(2).lower()}>",
        escaped,
        flags=re.IGNORECASE,
    )


def truncate(text: str, max_len: int) -> str:
    return text if len(text) <= max_len else text[:max_len - 1] + '…'


def get_buttons(items: list[dict[str, str | int]], prefix: str) -> list[list[InlineKeyboardButton]]:
    buttons: list[list[InlineKeyboardButton]] = []
    for item in items:
        buttons.append([
            InlineKeyboardButton(
                item['name'],
                callback_data=f"{prefix}_{item['id']}"
            )
        ])
    return buttons
