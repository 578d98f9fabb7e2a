"""
Group Schedule Board — Telegram Bot.

Telegram is the board's only user interface. Each chat is one session: it
picks a group (entering its password if the group has one), then sees who
is in class and who is free. A repeating job refreshes every active board.

Security: when ALLOWED_USER_IDS is set, everyone else is silently ignored.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Coroutine

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)

from src.bot import views
from src.config import settings
from src.core import clock
from src.core.access import UnlockResult
from src.core.resolver import Resolution
from src.core.session import SessionContext, SessionState
from src.data.loader import DataLoadError, load_roster
from src.data.models import Roster

logger = logging.getLogger(__name__)

# ConversationHandler state for the password prompt
AWAITING_SECRET = 0


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def _is_allowed(user_id: int | None) -> bool:
    if not settings.ALLOWED_USER_IDS:
        return True
    return user_id is not None and user_id in settings.ALLOWED_USER_IDS


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, Any]],
) -> Callable[..., Coroutine[Any, Any, Any]]:
    """Decorator that silently ignores updates from unauthorized users.

    Does NOT send any response to strangers. Open to everyone when
    ALLOWED_USER_IDS is empty.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
        user = update.effective_user
        if not _is_allowed(user.id if user else None):
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return None  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------


def _get_session(context: ContextTypes.DEFAULT_TYPE) -> SessionContext | None:
    """Return this chat's session, creating it once the roster is loaded."""
    session = context.chat_data.get("session")
    if session is not None:
        return session

    roster: Roster | None = context.bot_data.get("roster")
    if roster is None:
        return None

    session = SessionContext(roster, observed_time=clock.now())
    context.chat_data["session"] = session
    return session


def _unavailable_text(context: ContextTypes.DEFAULT_TYPE) -> str:
    error = context.bot_data.get("load_error")
    if error:
        return views.format_load_error(error)
    return views.LOADING_TEXT


async def _reply(update: Update, text: str, **kwargs: Any) -> None:
    """Reply to a message or a callback query's message alike."""
    message = update.effective_message
    if message is None:
        return
    await message.reply_text(text, parse_mode="HTML", **kwargs)


async def _send_group_list(update: Update, session: SessionContext) -> None:
    roster: Roster = session.roster
    await _reply(
        update,
        views.format_group_list(roster, session.access),
        reply_markup=views.group_keyboard(roster, session.access),
    )


async def _send_board(
    update: Update, context: ContextTypes.DEFAULT_TYPE, resolution: Resolution,
) -> None:
    """Post a fresh board message and remember it for the refresh job."""
    message = update.effective_message
    if message is None:
        return
    sent = await message.reply_text(
        views.format_board(resolution),
        parse_mode="HTML",
        reply_markup=views.board_keyboard(),
    )
    context.chat_data["board_message_id"] = sent.message_id


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message and group list."""
    session = _get_session(context)
    if session is None:
        await _reply(update, _unavailable_text(context))
        return

    await _reply(
        update,
        "Welcome to the <b>Group Schedule Board</b>!\n\n"
        "Pick a group to see who is in class right now and who is free. "
        "Type /help for the full command list.",
    )
    await _send_group_list(update, session)


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await _reply(
        update,
        "<b>Available commands:</b>\n"
        "/groups — Choose a group\n"
        "/refresh — Refresh the current group's board\n"
        "/leave — Leave the current group\n"
        "/cancel — Cancel a password prompt\n"
        "/help — Show this message",
    )


@authorized_only
async def cmd_groups(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /groups — show the group picker."""
    session = _get_session(context)
    if session is None:
        await _reply(update, _unavailable_text(context))
        return
    await _send_group_list(update, session)


@authorized_only
async def cmd_refresh(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /refresh — re-resolve the active group at the current time."""
    session = _get_session(context)
    if session is None:
        await _reply(update, _unavailable_text(context))
        return

    resolution = session.manual_refresh(clock.now())
    if resolution is None:
        await _reply(update, views.NO_GROUP_TEXT)
        return
    await _send_board(update, context, resolution)


@authorized_only
async def cmd_leave(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /leave — deselect the group and go back to the picker."""
    session = _get_session(context)
    if session is None:
        await _reply(update, _unavailable_text(context))
        return

    session.deselect()
    context.chat_data.pop("board_message_id", None)
    await _send_group_list(update, session)


# ---------------------------------------------------------------------------
# Group selection + password conversation
# ---------------------------------------------------------------------------


@authorized_only
async def select_group_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle a group button tap: enter the group or open the password prompt."""
    query = update.callback_query
    await query.answer()

    session = _get_session(context)
    if session is None:
        await _reply(update, _unavailable_text(context))
        return ConversationHandler.END

    group_id = query.data[len(views.GROUP_CALLBACK_PREFIX):]
    group = session.roster.group(group_id)
    if group is None:
        await _reply(update, "That group no longer exists. Use /groups to pick again.")
        return ConversationHandler.END

    session.observed_time = clock.now()
    resolution = session.select_group(group)
    if resolution is not None:
        await _send_board(update, context, resolution)
        return ConversationHandler.END

    await _reply(
        update,
        views.format_secret_prompt(group),
        reply_markup=views.secret_prompt_keyboard(),
    )
    return AWAITING_SECRET


@authorized_only
async def receive_secret(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Check a typed password against the group awaiting it."""
    session = _get_session(context)
    if session is None or session.state is not SessionState.AWAITING_SECRET:
        return ConversationHandler.END

    message = update.effective_message
    if message is None:
        return AWAITING_SECRET

    result = session.submit_secret(message.text or "")

    # Don't leave the password sitting in the chat
    try:
        await message.delete()
    except TelegramError as exc:
        logger.debug("Could not delete password message: %s", exc)

    if result is UnlockResult.WRONG_SECRET:
        await _reply(update, views.WRONG_SECRET_TEXT)
        return AWAITING_SECRET

    resolution = session.tick(clock.now())
    if resolution is not None:
        await _send_board(update, context, resolution)
    return ConversationHandler.END


@authorized_only
async def cancel_secret(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Close the password prompt without entering the group."""
    if update.callback_query is not None:
        await update.callback_query.answer()

    session = _get_session(context)
    if session is not None:
        session.cancel()
        await _reply(update, "Password prompt closed.")
        await _send_group_list(update, session)
    return ConversationHandler.END


# ---------------------------------------------------------------------------
# Board buttons
# ---------------------------------------------------------------------------


@authorized_only
async def board_refresh_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle the 🔄 Refresh button — redraw the board in place."""
    query = update.callback_query
    await query.answer()

    session = _get_session(context)
    if session is None:
        return

    resolution = session.manual_refresh(clock.now())
    if resolution is None:
        await query.edit_message_text(views.NO_GROUP_TEXT)
        return

    try:
        await query.edit_message_text(
            views.format_board(resolution),
            parse_mode="HTML",
            reply_markup=views.board_keyboard(),
        )
        context.chat_data["board_message_id"] = query.message.message_id
    except TelegramError as exc:
        logger.error("Board refresh edit failed: %s", exc)


@authorized_only
async def board_leave_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle the "Change group" button."""
    query = update.callback_query
    await query.answer()

    session = _get_session(context)
    if session is None:
        return

    session.deselect()
    context.chat_data.pop("board_message_id", None)
    await _send_group_list(update, session)


# ---------------------------------------------------------------------------
# Periodic refresh
# ---------------------------------------------------------------------------


async def refresh_boards(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Tick every chat session; redraw only boards with an active group."""
    now = clock.now()
    refreshed = 0
    # Snapshot: new chats may register while an edit is awaited
    for chat_id, chat_data in list(context.application.chat_data.items()):
        session: SessionContext | None = chat_data.get("session")
        if session is None:
            continue

        resolution = session.tick(now)
        message_id = chat_data.get("board_message_id")
        if resolution is None or message_id is None:
            continue

        try:
            await context.bot.edit_message_text(
                views.format_board(resolution),
                chat_id=chat_id,
                message_id=message_id,
                parse_mode="HTML",
                reply_markup=views.board_keyboard(),
            )
            refreshed += 1
        except TelegramError as exc:
            logger.error("Failed to refresh board in chat %s: %s", chat_id, exc)

    if refreshed:
        logger.debug("Refreshed %d boards", refreshed)


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


async def _load_roster_on_startup(app: Application) -> None:
    """post_init hook: load the roster once, before polling starts.

    A failure is kept in bot_data and reported to every user; no retry.
    """
    try:
        app.bot_data["roster"] = await load_roster(settings.DATA_SOURCE)
    except DataLoadError as exc:
        logger.error("Failed to load roster from %s: %s", settings.DATA_SOURCE, exc)
        app.bot_data["load_error"] = str(exc)


def build_app(roster: Roster | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        roster: Preloaded roster. When omitted, the roster is loaded from
                DATA_SOURCE in the application's post_init hook.
    """
    builder = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN)
    if roster is None:
        builder = builder.post_init(_load_roster_on_startup)
    app = builder.build()

    if roster is not None:
        app.bot_data["roster"] = roster

    # Commands
    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("groups", cmd_groups))
    app.add_handler(CommandHandler("refresh", cmd_refresh))
    app.add_handler(CommandHandler("leave", cmd_leave))

    # Group selection + password prompt
    select_pattern = rf"^{views.GROUP_CALLBACK_PREFIX}"
    secret_conv = ConversationHandler(
        entry_points=[CallbackQueryHandler(select_group_callback, pattern=select_pattern)],
        states={
            AWAITING_SECRET: [
                MessageHandler(
                    filters.UpdateType.MESSAGE & filters.TEXT & ~filters.COMMAND, receive_secret,
                ),
            ],
        },
        fallbacks=[
            CommandHandler("cancel", cancel_secret),
            CallbackQueryHandler(cancel_secret, pattern=rf"^{views.CANCEL_SECRET_CALLBACK}$"),
        ],
        allow_reentry=True,
    )
    app.add_handler(secret_conv)

    # Board buttons
    app.add_handler(CallbackQueryHandler(board_refresh_callback, pattern=rf"^{views.REFRESH_CALLBACK}$"))
    app.add_handler(CallbackQueryHandler(board_leave_callback, pattern=rf"^{views.LEAVE_CALLBACK}$"))

    _setup_refresh_job(app)

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def _setup_refresh_job(app: Application) -> None:
    """Register the repeating board refresh; it runs for the process lifetime."""
    app.job_queue.run_repeating(
        refresh_boards,
        interval=settings.REFRESH_INTERVAL_SECONDS,
        first=settings.REFRESH_INTERVAL_SECONDS,
        name="board_refresh",
    )
    logger.info("Board refresh scheduled every %d seconds", settings.REFRESH_INTERVAL_SECONDS)


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Group Schedule Board bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
