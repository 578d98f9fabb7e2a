"""Telegram rendering for the board: group list, password prompt, status board.

Pure formatting, no Telegram I/O. All roster text is HTML-escaped because
messages are sent with parse_mode="HTML".
"""

from __future__ import annotations

from datetime import datetime
from html import escape

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from src.core.access import AccessController
from src.core.resolver import Resolution, ResolvedStatus
from src.data.models import Group, Roster

GROUP_CALLBACK_PREFIX = "group:"
REFRESH_CALLBACK = "board:refresh"
LEAVE_CALLBACK = "board:leave"
CANCEL_SECRET_CALLBACK = "secret:cancel"

NO_MEMBERS_TEXT = "No members in this group."
LOADING_TEXT = "Schedule data is still loading... please try again in a moment."
WRONG_SECRET_TEXT = "Wrong password, please try again (or /cancel)."
NO_GROUP_TEXT = "No group selected. Use /groups to pick one."


def format_observed_time(at: datetime) -> str:
    """e.g. "Tuesday, 14 October 2025 09:30:00"."""
    return at.strftime("%A, %d %B %Y %H:%M:%S")


def format_load_error(message: str) -> str:
    return (
        "Failed to load schedule data. Check that the roster document exists "
        "and is well-formed.\n"
        f"Error: {escape(message)}"
    )


# ---------------------------------------------------------------------------
# Group list
# ---------------------------------------------------------------------------


def group_lock_marker(group: Group, access: AccessController) -> str:
    return "🔓" if access.is_unlocked(group) else "🔒"


def format_group_list(roster: Roster, access: AccessController) -> str:
    if not roster.groups:
        return "No groups are defined in the roster."

    lines = ["<b>Choose a group:</b>\n"]
    for g in roster.groups:
        marker = group_lock_marker(g, access)
        status = "password required" if marker == "🔒" else "open"
        line = f"{marker} <b>{escape(g.name)}</b> ({status})"
        if g.description:
            line += f"\n    {escape(g.description)}"
        lines.append(line)
    return "\n".join(lines)


def group_keyboard(roster: Roster, access: AccessController) -> InlineKeyboardMarkup:
    keyboard = [
        [
            InlineKeyboardButton(
                f"{group_lock_marker(g, access)} {g.name}",
                callback_data=f"{GROUP_CALLBACK_PREFIX}{g.id}",
            )
        ]
        for g in roster.groups
    ]
    return InlineKeyboardMarkup(keyboard)


# ---------------------------------------------------------------------------
# Password prompt
# ---------------------------------------------------------------------------


def format_secret_prompt(group: Group) -> str:
    lines = [f"🔒 <b>Access {escape(group.name)}</b>"]
    if group.description:
        lines.append(escape(group.description))
    lines.append("\nSend the group password, or /cancel.")
    return "\n".join(lines)


def secret_prompt_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("Cancel", callback_data=CANCEL_SECRET_CALLBACK)]]
    )


# ---------------------------------------------------------------------------
# Status board
# ---------------------------------------------------------------------------


def _format_status(status: ResolvedStatus) -> str:
    name = escape(status.person.name)
    entry = status.active_entry
    if entry is None:
        return f"✅ <b>{name}</b>: free\n    No class right now"

    details = [escape(entry.activity), escape(entry.display_time)]
    if entry.location:
        details.append(escape(entry.location))
    return f"📚 <b>{name}</b>: in class\n    " + " · ".join(details)


def format_board(resolution: Resolution) -> str:
    group = resolution.group
    lines = [f"<b>{escape(group.name)}</b>"]
    if group.description:
        lines.append(f"<i>{escape(group.description)}</i>")
    lines.append(f"🕒 {format_observed_time(resolution.observed_time)}\n")

    if resolution.is_empty:
        lines.append(NO_MEMBERS_TEXT)
    else:
        lines.extend(_format_status(s) for s in resolution.statuses)

    lines.append(
        f"\nIn class: <b>{resolution.active_count}</b> / {resolution.total_count}"
    )
    return "\n".join(lines)


def board_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("🔄 Refresh", callback_data=REFRESH_CALLBACK),
                InlineKeyboardButton("Change group", callback_data=LEAVE_CALLBACK),
            ]
        ]
    )
