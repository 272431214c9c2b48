import asyncio
from types import SimpleNamespace

import discord
import pytest

from flbot.discord_utils import (
    delete_message_later,
    find_log_attachment,
    is_log_attachment,
    read_log_attachment,
    safe_delete_message,
)
from flbot.recorder import RecordInputError


class _Resp:
    status = 404
    reason = "Not Found"


def _att(filename, data=b"", size=None, fail=False):
    async def read():
        if fail:
            raise discord.NotFound(_Resp(), "gone")
        return data

    return SimpleNamespace(filename=filename, size=len(data) if size is None else size, read=read)


def test_is_log_attachment():
    assert is_log_attachment(_att("act.csv"))
    assert is_log_attachment(_att("ACT.TXT"))
    assert not is_log_attachment(_att("shot.png"))
    assert not is_log_attachment(_att(None))


def test_find_log_attachment_picks_first_log():
    msg = SimpleNamespace(attachments=[_att("a.png"), _att("b.txt"), _att("c.csv")])
    assert find_log_attachment(msg).filename == "b.txt"
    assert find_log_attachment(SimpleNamespace(attachments=[])) is None


def test_read_log_attachment_decodes_cp932():
    text = "Name,Job,Damage\n山田,WAR,1\n"
    got = asyncio.run(read_log_attachment(_att("a.csv", text.encode("cp932")), 1000))
    assert got == text


def test_read_log_attachment_size_limit():
    with pytest.raises(RecordInputError):
        asyncio.run(read_log_attachment(_att("a.csv", b"x" * 20), 10))


def test_read_log_attachment_download_failure():
    with pytest.raises(RecordInputError):
        asyncio.run(read_log_attachment(_att("a.csv", b"x", fail=True), 1000))


def test_safe_delete_message_swallows_forbidden():
    async def delete():
        raise discord.Forbidden(_Resp(), "no")

    asyncio.run(safe_delete_message(SimpleNamespace(delete=delete)))
    asyncio.run(safe_delete_message(None))


def test_delete_message_later_never_raises():
    async def delete():
        raise RuntimeError("socket closed")

    asyncio.run(delete_message_later(SimpleNamespace(delete=delete), 0))


def test_delete_message_later_deletes():
    deleted = []

    async def delete():
        deleted.append(True)

    asyncio.run(delete_message_later(SimpleNamespace(delete=delete), 0))
    assert deleted == [True]
