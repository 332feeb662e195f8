"""
Anki plain-text export.

Anki's "Notes in Plain Text" importer reads the header directives below:
tab-separated fields, HTML enabled, tags in the third column.
"""

import re
from typing import Iterable

from utils.models import Card, ContentType, Folder

ANKI_HEADER = (
    "#separator:tab\n"
    "#html:true\n"
    "#tags column:3\n"
)

IMAGE_MAX_WIDTH = 300


def _side(content_type: ContentType, content: str) -> str:
    if content_type == ContentType.IMAGE:
        return f'<img src="{content}" style="max-width:{IMAGE_MAX_WIDTH}px;">'
    return content.replace('\t', '    ').replace('\r\n', '\n').replace('\n', '<br>')


def export_line(card: Card) -> str:
    front = _side(card.front_type, card.front_content)
    back = _side(card.back_type, card.back_content)
    tags = ' '.join(t.replace(' ', '_') for t in card.tags)
    return f"{front}\t{back}\t{tags}"


def export_anki(cards: Iterable[Card]) -> str:
    lines = [export_line(card) for card in cards]
    return ANKI_HEADER + ''.join(f"{line}\n" for line in lines)


def export_filename(folder: Folder) -> str:
    slug = re.sub(r'[^\w-]+', '_', folder.name, flags=re.UNICODE).strip('_') or folder.folder_id
    return f"anki_{slug}.txt"
