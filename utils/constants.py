from enum import auto, IntEnum
from telegram import InlineKeyboardButton

FOLDER_NAME_MAX = 50
CARD_SIDE_MAX = 1000


class AddCardState(IntEnum):
    AWAITING_CONTENT = auto()
    AWAITING_BACK = auto()
    AWAITING_FOLDER = auto()
    CONFIRMATION_PREVIEW = auto()


class ReviewState(IntEnum):
    SHOWING_FRONT = auto()
    RATING = auto()


class FolderState(IntEnum):
    NAMING_FOLDER = auto()
    RENAMING_FOLDER = auto()


class ImportState(IntEnum):
    AWAITING_WORDS = auto()
    CONFIRMING = auto()


class RestoreState(IntEnum):
    AWAITING_FILE = auto()


PREVIEW_BUTTONS = [
    [InlineKeyboardButton("✅ Save", callback_data='save_card')],
    [
        InlineKeyboardButton("✏️ Edit", callback_data='edit_card'),
        InlineKeyboardButton("\U0001f4c1 Folder", callback_data='change_folder'),
    ],
    [InlineKeyboardButton("✖ Cancel", callback_data='cancel')],
]

MENU_BUTTON = [InlineKeyboardButton("\U0001f3e0 Menu", callback_data='main_menu')]
