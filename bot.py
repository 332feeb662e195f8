import logging

from telegram import Update
from telegram.error import BadRequest, Forbidden, TimedOut, NetworkError, TelegramError
from telegram.ext import (
    ApplicationBuilder,
    ApplicationHandlerStop,
    CommandHandler,
    MessageHandler,
    ConversationHandler,
    CallbackQueryHandler,
    ContextTypes,
    TypeHandler,
    filters,
)

from config import TG_BOT_TOKEN, PROXY_URL, OWNER_ID
from database.database import init_db
import handlers.ai_import as hand_import
import handlers.backup as hand_backup
import handlers.cards as hand_card
import handlers.start as hand_start
import handlers.flow_handlers as hand_flow
import handlers.folders as hand_folders
import handlers.review as hand_review
import handlers.stats as hand_stats
import handlers.help as hand_help
import handlers.manage as hand_manage
from utils.constants import AddCardState, ReviewState, FolderState, ImportState, RestoreState


async def owner_gate(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Runs before every other handler; drops updates from anyone but the owner."""
    user = update.effective_user
    if OWNER_ID is not None and (user is None or user.id != OWNER_ID):
        logging.warning(f"Ignoring update from user {user.id if user else None}")
        raise ApplicationHandlerStop


def main() -> None:
    logging.info("Running main")

    builder = ApplicationBuilder().token(TG_BOT_TOKEN)
    if PROXY_URL:
        builder = builder.proxy(PROXY_URL).get_updates_proxy(PROXY_URL)
    application = builder.build()

    menu_exit = CallbackQueryHandler(hand_start.main_menu, pattern='^main_menu$')
    common_fallbacks = [
        CommandHandler('cancel', hand_start.force_start),
        CommandHandler('start', hand_start.force_start),
        CommandHandler('menu', hand_start.force_start),
    ]

    # Add Card conversation
    add_card_handler = ConversationHandler(
        entry_points=[
            CallbackQueryHandler(hand_card.add_card_entry, pattern='^add_card$')
        ],
        per_message=False,

        states={
            AddCardState.AWAITING_CONTENT: [
                menu_exit,
                MessageHandler(filters.PHOTO, hand_flow.get_content),
                MessageHandler(filters.TEXT & ~filters.COMMAND, hand_flow.get_content),
            ],

            AddCardState.AWAITING_BACK: [
                menu_exit,
                CallbackQueryHandler(hand_flow.cancel, pattern='^cancel$'),
                MessageHandler(filters.PHOTO, hand_flow.get_back),
                MessageHandler(filters.TEXT & ~filters.COMMAND, hand_flow.get_back),
            ],

            AddCardState.AWAITING_FOLDER: [
                CallbackQueryHandler(hand_card.folder_picked, pattern='^pick_folder_.+$'),
                CallbackQueryHandler(hand_flow.back_to_preview, pattern='^back$'),
            ],

            AddCardState.CONFIRMATION_PREVIEW: [
                CallbackQueryHandler(hand_card.save_card, pattern='^save_card$'),
                CallbackQueryHandler(hand_card.edit_card, pattern='^edit_card$'),
                CallbackQueryHandler(hand_card.change_folder, pattern='^change_folder$'),
                CallbackQueryHandler(hand_flow.cancel, pattern='^cancel$'),
            ]
        },

        fallbacks=[CommandHandler('cancel', hand_flow.cancel)] + common_fallbacks[1:]
    )

    # Review conversation
    review_handler = ConversationHandler(
        entry_points=[
            CallbackQueryHandler(hand_review.review_entry, pattern='^review$')
        ],
        per_message=False,

        states={
            ReviewState.SHOWING_FRONT: [
                CallbackQueryHandler(hand_review.show_answer, pattern='^show_answer$'),
                CallbackQueryHandler(hand_review.cancel_review, pattern='^cancel_review$'),
            ],

            ReviewState.RATING: [
                CallbackQueryHandler(hand_review.rate_card, pattern='^rate_\\d$'),
                CallbackQueryHandler(hand_review.cancel_review, pattern='^cancel_review$'),
            ],
        },

        fallbacks=[CommandHandler('cancel', hand_review.cancel_review)] + common_fallbacks[1:]
    )

    # Folder naming conversation (new + rename)
    folder_name_handler = ConversationHandler(
        entry_points=[
            CallbackQueryHandler(hand_folders.new_folder_entry, pattern='^new_folder$'),
            CallbackQueryHandler(hand_folders.rename_folder_entry, pattern='^folder_rename_.+$'),
        ],
        per_message=False,

        states={
            FolderState.NAMING_FOLDER: [
                menu_exit,
                MessageHandler(filters.TEXT & ~filters.COMMAND, hand_folders.create_folder),
            ],
            FolderState.RENAMING_FOLDER: [
                menu_exit,
                MessageHandler(filters.TEXT & ~filters.COMMAND, hand_folders.rename_folder),
            ],
        },

        fallbacks=common_fallbacks
    )

    # AI import conversation
    import_handler = ConversationHandler(
        entry_points=[
            CallbackQueryHandler(hand_import.ai_import_entry, pattern='^ai_import$')
        ],
        per_message=False,

        states={
            ImportState.AWAITING_WORDS: [
                menu_exit,
                MessageHandler(filters.TEXT & ~filters.COMMAND, hand_import.get_words),
            ],
            ImportState.CONFIRMING: [
                CallbackQueryHandler(hand_import.confirm_import, pattern='^import_confirm$'),
                CallbackQueryHandler(hand_import.cancel_import, pattern='^import_cancel$'),
            ],
        },

        fallbacks=[CommandHandler('cancel', hand_import.cancel_import)] + common_fallbacks[1:]
    )

    # Restore from a JSON backup
    restore_handler = ConversationHandler(
        entry_points=[CommandHandler('restore', hand_backup.restore_command)],

        states={
            RestoreState.AWAITING_FILE: [
                menu_exit,
                MessageHandler(filters.Document.FileExtension('json'), hand_backup.restore_file),
            ],
        },

        fallbacks=common_fallbacks
    )

    application.add_handler(TypeHandler(Update, owner_gate), group=-1)

    application.add_handler(CommandHandler('start', hand_start.start))
    application.add_handler(add_card_handler)
    application.add_handler(review_handler)
    application.add_handler(folder_name_handler)
    application.add_handler(import_handler)
    application.add_handler(restore_handler)

    # Slash commands
    application.add_handler(CommandHandler('menu', hand_start.menu_command))
    application.add_handler(CommandHandler('review', hand_review.review_command))
    application.add_handler(CommandHandler('stats', hand_stats.stats_command))
    application.add_handler(CommandHandler('folders', hand_folders.folders_command))
    application.add_handler(CommandHandler('help', hand_help.help_command))

    # Standalone callback handlers
    application.add_handler(CallbackQueryHandler(hand_start.main_menu, pattern='^main_menu$'))
    application.add_handler(CallbackQueryHandler(hand_stats.stats_entry, pattern='^stats$'))
    application.add_handler(CallbackQueryHandler(hand_help.help_entry, pattern='^help$'))
    application.add_handler(CallbackQueryHandler(hand_backup.export_entry, pattern='^export$'))

    # Folders
    application.add_handler(CallbackQueryHandler(hand_folders.folders_entry, pattern='^folders$'))
    application.add_handler(CallbackQueryHandler(hand_folders.folders_page, pattern=r'^folders_page_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_folders.switch_folder, pattern='^folder_use_.+$'))

    # Manage: folder detail & card actions
    application.add_handler(CallbackQueryHandler(hand_manage.folder_open, pattern='^folder_open_.+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.folder_cards_page, pattern=r'^folder_page_\d+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.folder_back, pattern='^folder_back$'))
    application.add_handler(CallbackQueryHandler(hand_manage.card_info, pattern='^card_info_.+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.card_delete_confirm, pattern='^card_del_.+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.card_delete_yes, pattern='^card_delok_.+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.card_move_entry, pattern='^card_move_.+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.card_move_to, pattern='^card_moveto_.+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.folder_delete_confirm, pattern='^folder_del_.+$'))
    application.add_handler(CallbackQueryHandler(hand_manage.folder_delete_yes, pattern='^folder_delok_.+$'))

    application.add_error_handler(error_handler)
    application.run_polling()


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Global error handler — logs the error and tries to notify the user."""
    error = context.error
    logging.error(f"Update {update} caused error: {error}", exc_info=error)

    if isinstance(error, Forbidden):
        # Owner blocked the bot
        logging.warning(f"Bot was blocked by user: {error}")
        return

    if isinstance(error, BadRequest):
        msg = str(error).lower()
        if "message is not modified" in msg:
            # Same button tapped twice
            return
        if "message to edit not found" in msg or "message to delete not found" in msg:
            return
        logging.warning(f"Bad request: {error}")
    elif isinstance(error, (TimedOut, NetworkError)):
        logging.warning(f"Network issue: {error}")
        return

    if isinstance(update, Update) and update.effective_chat:
        try:
            await context.bot.send_message(
                chat_id=update.effective_chat.id,
                text="⚠️ Something went wrong. Try /start to reset."
            )
        except TelegramError as e:
            logging.warning(f"Could not notify user about the error: {e}")


if __name__ == '__main__':
    logging.info("Init db...")
    init_db()

    logging.info("Starting app")
    main()
