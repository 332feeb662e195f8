"""
Card and folder values.

Cards are frozen snapshots. Anything that "changes" a card returns a new one;
the database layer owns the authoritative copy.

Persisted records may predate the SRS columns (or come from an old JSON
backup), so card_from_record() fills gaps instead of failing.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

DEFAULT_FOLDER_ID = 'default'
DEFAULT_FOLDER_NAME = 'Default'

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3


class ContentType(str, Enum):
    TEXT = 'text'
    IMAGE = 'image'


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class SrsState:
    interval: float = 0.0
    repetition: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    next_review_time: float = 0


@dataclass(frozen=True)
class Folder:
    folder_id: str
    name: str
    created_at: int = 0


@dataclass(frozen=True)
class Card:
    card_id: str
    folder_id: str
    front_type: ContentType
    front_content: str
    back_type: ContentType
    back_content: str
    phonetic: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    interval: float = 0.0
    repetition: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    next_review_time: float = 0
    created_at: int = 0

    @property
    def srs(self) -> SrsState:
        return SrsState(self.interval, self.repetition, self.ease_factor, self.next_review_time)

    def with_srs(self, state: SrsState) -> 'Card':
        return replace(
            self,
            interval=state.interval,
            repetition=state.repetition,
            ease_factor=state.ease_factor,
            next_review_time=state.next_review_time,
        )

    def moved_to(self, folder_id: str) -> 'Card':
        return replace(self, folder_id=folder_id)


def normalize_tags(tags) -> tuple[str, ...]:
    if not tags:
        return ()
    if isinstance(tags, str):
        tags = tags.split()
    return tuple(sorted({str(t).strip() for t in tags if str(t).strip()}))


def new_card(
    folder_id: str,
    front_type: ContentType | str,
    front_content: str,
    back_type: ContentType | str,
    back_content: str,
    phonetic: str | None = None,
    tags=(),
    now: int | None = None,
) -> Card:
    """A fresh card is due immediately and has never been rated."""
    return Card(
        card_id=new_id(),
        folder_id=folder_id or DEFAULT_FOLDER_ID,
        front_type=ContentType(front_type),
        front_content=front_content,
        back_type=ContentType(back_type),
        back_content=back_content,
        phonetic=phonetic or None,
        tags=normalize_tags(tags),
        created_at=now if now is not None else now_ms(),
    )


def _pick(record: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _content_type(value: Any) -> ContentType:
    if value in ('image', 'photo'):
        return ContentType.IMAGE
    return ContentType.TEXT


def card_from_record(record: dict[str, Any]) -> Card:
    """
    Build a Card from a DB row dict or a legacy JSON record.

    Accepts snake_case (our columns) and camelCase (old backups).
    Missing SRS fields mean "never reviewed"; a missing folder means the
    default folder.
    """
    card_id = _pick(record, 'card_id', 'id')
    created_at = _pick(record, 'created_at', 'createdAt') or 0

    return Card(
        card_id=str(card_id) if card_id is not None else new_id(),
        folder_id=str(_pick(record, 'folder_id', 'folderId') or DEFAULT_FOLDER_ID),
        front_type=_content_type(_pick(record, 'front_type', 'frontType')),
        front_content=_pick(record, 'front_content', 'frontContent') or '',
        back_type=_content_type(_pick(record, 'back_type', 'backType')),
        back_content=_pick(record, 'back_content', 'backContent') or '',
        phonetic=_pick(record, 'phonetic') or None,
        tags=normalize_tags(_pick(record, 'tags')),
        interval=float(_pick(record, 'interval') or 0),
        repetition=int(_pick(record, 'repetition') or 0),
        ease_factor=float(_pick(record, 'ease_factor', 'easeFactor') or DEFAULT_EASE_FACTOR),
        next_review_time=_pick(record, 'next_review_time', 'nextReviewTime') or 0,
        created_at=int(created_at),
    )


def folder_from_record(record: dict[str, Any]) -> Folder:
    return Folder(
        folder_id=str(_pick(record, 'folder_id', 'id')),
        name=_pick(record, 'name', 'folder_name') or '',
        created_at=int(_pick(record, 'created_at', 'createdAt') or 0),
    )
