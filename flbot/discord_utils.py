"""Discord helper utilities.

Small and side-effect free apart from the Discord calls themselves, so they
can be exercised with stub objects in tests.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import discord

from .recorder import RecordInputError, decode_log_bytes

logger = logging.getLogger("flbot.discord_utils")

LOG_EXTENSIONS = (".csv", ".txt")


def is_log_attachment(att: discord.Attachment) -> bool:
    return (att.filename or "").lower().endswith(LOG_EXTENSIONS)


def find_log_attachment(message: discord.Message) -> Optional[discord.Attachment]:
    for att in message.attachments:
        if is_log_attachment(att):
            return att
    return None


async def read_log_attachment(att: discord.Attachment, max_bytes: int) -> str:
    """Download an uploaded ACT export and decode it to text."""
    size = int(getattr(att, "size", 0) or 0)
    if max_bytes and size > max_bytes:
        raise RecordInputError(f"ファイルが大きすぎます ({size} bytes, 上限 {max_bytes} bytes)")
    try:
        data = await att.read()
    except discord.HTTPException as e:
        logger.warning("Attachment download failed: %s (%s)", att.filename, e)
        raise RecordInputError("添付ファイルをダウンロードできませんでした。") from e
    logger.debug("Downloaded attachment %s (%d bytes)", att.filename, len(data))
    return decode_log_bytes(data)


async def safe_delete_message(message: Optional[discord.Message]) -> None:
    """Delete a Discord message (best-effort)."""
    if message is None:
        return
    try:
        await message.delete()
    except (discord.NotFound, discord.Forbidden):
        return
    except discord.HTTPException:
        logger.debug("Failed to delete message", exc_info=True)


async def delete_message_later(message: Optional[discord.Message], delay_sec: int) -> None:
    """Delete a message after delay_sec seconds (best-effort)."""
    if message is None:
        return
    try:
        await asyncio.sleep(max(0, int(delay_sec)))
        await safe_delete_message(message)
    except Exception:
        # a cleanup task must never take the bot down
        logger.debug("Failed to auto-delete message", exc_info=True)
