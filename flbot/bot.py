import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import discord
from aiohttp import web

from .config import Settings
from .constants import TEAM_ALIASES, TEAMS
from .discord_utils import delete_message_later, find_log_attachment, read_log_attachment, safe_delete_message
from .formatter import build_error_embed, build_record_embed, build_strategist_embed, chunk_message
from .logging_setup import reset_trace_id, set_trace_id, setup_logging
from .match_store import MatchStore
from .names import capitalize_name, suggest_names
from .recorder import ActRecorder, RecordInputError
from .strategist import summarize_strategist

logger = logging.getLogger("flbot")


# Discord can deliver the same message twice around reconnects.
COMMAND_DEDUP_TTL_SEC = 120
COMMAND_DEDUP_MAX = 5000
_COMMAND_DEDUP_CACHE: "OrderedDict[int, float]" = OrderedDict()


def _command_seen_recently(msg_id: int) -> bool:
    """Return True if msg_id was handled recently (idempotency guard)."""
    now = time.time()
    cutoff = now - float(COMMAND_DEDUP_TTL_SEC)
    while _COMMAND_DEDUP_CACHE:
        _k0, ts0 = next(iter(_COMMAND_DEDUP_CACHE.items()))
        if ts0 >= cutoff:
            break
        _COMMAND_DEDUP_CACHE.popitem(last=False)

    if msg_id in _COMMAND_DEDUP_CACHE:
        _COMMAND_DEDUP_CACHE.move_to_end(msg_id)
        return True

    _COMMAND_DEDUP_CACHE[msg_id] = now
    while len(_COMMAND_DEDUP_CACHE) > COMMAND_DEDUP_MAX:
        _COMMAND_DEDUP_CACHE.popitem(last=False)
    return False


def _new_trace_id(prefix: str = "msg") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}-{int(time.time())}"


# pending cleanup tasks; the event loop only holds weak references
_BACKGROUND_TASKS: "set[asyncio.Task]" = set()


def _spawn_background(coro) -> asyncio.Task:
    task = asyncio.create_task(coro)
    _BACKGROUND_TASKS.add(task)
    task.add_done_callback(_BACKGROUND_TASKS.discard)
    return task


# ----------------------------
# Command argument parsing
# ----------------------------

@dataclass
class ActRecordArgs:
    team: str
    points: Dict[str, int]
    kills: int
    assists: int
    strategist_first: Optional[str] = None
    strategist_last: Optional[str] = None


def _take_team(tokens: List[str]) -> Tuple[str, List[str]]:
    # "Twin Adders" / "Immortal Flames" arrive as two tokens
    if len(tokens) >= 2:
        two = f"{tokens[0]} {tokens[1]}".casefold()
        if two in TEAM_ALIASES:
            return TEAM_ALIASES[two], tokens[2:]
    if tokens and tokens[0].casefold() in TEAM_ALIASES:
        return TEAM_ALIASES[tokens[0].casefold()], tokens[1:]
    raise RecordInputError(f"不明なチームです: {tokens[0] if tokens else ''!r}")


def _as_int(token: str, label: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise RecordInputError(f"{label} は整数で指定してください: {token!r}") from None


def parse_actrecord_args(text: str) -> ActRecordArgs:
    """Parse `ACTRECORD <team> <M> <T> <I> <kills> <assists> [<first> <last>]`."""
    tokens = (text or "").split()
    if not tokens or tokens[0].upper() != "ACTRECORD":
        raise RecordInputError("ACTRECORD コマンドではありません。")
    team, rest = _take_team(tokens[1:])
    if len(rest) < 5:
        raise RecordInputError(
            "使い方: `ACTRECORD <チーム> <黒渦団pt> <双蛇党pt> <不滅隊pt> <キル> <アシスト> [軍師の名 軍師の姓]`"
        )
    labels = ["黒渦団pt", "双蛇党pt", "不滅隊pt"]
    points = {t: _as_int(tok, lbl) for t, tok, lbl in zip(TEAMS, rest[:3], labels)}
    kills = _as_int(rest[3], "キル")
    assists = _as_int(rest[4], "アシスト")
    extra = rest[5:]
    first = extra[0] if len(extra) >= 1 else None
    last = " ".join(extra[1:]) if len(extra) >= 2 else None
    return ActRecordArgs(team=team, points=points, kills=kills, assists=assists,
                         strategist_first=first, strategist_last=last)


def parse_strategist_args(text: str) -> Optional[str]:
    """`STRATEGIST <first> <last>` -> 'First Last' (capitalized), or None."""
    tokens = (text or "").split()[1:]
    if len(tokens) < 2:
        return None
    first = capitalize_name(tokens[0])
    last = capitalize_name(tokens[1])
    if not first or not last:
        return None
    return f"{first} {last}"


HELP_TEXT = (
    "🆘 **コマンド一覧**\n"
    "\n"
    "• `ACTRECORD <チーム> <黒渦団pt> <双蛇党pt> <不滅隊pt> <キル> <アシスト> [軍師の名 軍師の姓]`\n"
    "  ACTのCSV/TXTファイルを**同じメッセージに添付**してください。\n"
    "  チーム: `Maelstrom` / `TwinAdders` / `ImmortalFlames` (黒渦団 / 双蛇党 / 不滅隊)\n"
    "• `STRATEGIST <名> <姓>`: 軍師の戦績を表示します。\n"
    "• `HELP`: このメッセージ。\n"
)


# ----------------------------
# Handlers
# ----------------------------

@dataclass
class BotContext:
    settings: Settings
    store: MatchStore
    recorder: ActRecorder
    store_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


async def handle_actrecord(ctx: BotContext, message: discord.Message) -> None:
    try:
        args = parse_actrecord_args(message.content or "")
        att = find_log_attachment(message)
        if att is None:
            raise RecordInputError("CSVファイルが見つかりませんでした。ACTのCSV/TXTファイルを添付してください。")
        log_text = await read_log_attachment(att, ctx.settings.max_log_bytes)
        outcome = await ctx.recorder.record(
            user_id=str(message.author.id),
            my_team=args.team,
            points=args.points,
            my_kills=args.kills,
            my_assists=args.assists,
            log_text=log_text,
            strategist_first=args.strategist_first,
            strategist_last=args.strategist_last,
        )
    except RecordInputError as e:
        logger.info("ACTRECORD refused: %s", e)
        await message.channel.send(embed=build_error_embed("ACT記録エラー", str(e)))
        return

    await message.channel.send(embed=build_record_embed(outcome))


async def handle_strategist(ctx: BotContext, message: discord.Message) -> None:
    full_name = parse_strategist_args(message.content or "")
    if not full_name:
        await message.channel.send(
            embed=build_error_embed("軍師検索エラー", "`STRATEGIST <名> <姓>` の形式で入力してください。")
        )
        return

    async with ctx.store_lock:
        records = await asyncio.to_thread(ctx.store.find_strategist_records, full_name)
        known = await asyncio.to_thread(ctx.store.strategist_names)

    stats = summarize_strategist(full_name, records)
    if stats is None:
        text = f"🔍 **軍師「{full_name}」の戦績は見つかりませんでした。** 名前を確認するか、ACTRECORD で記録されているか確認してください。"
        hints = suggest_names(full_name, known)
        if hints:
            text += "\nもしかして: " + ", ".join(f"`{h}`" for h in hints)
        await message.channel.send(text)
        return

    await message.channel.send(embed=build_strategist_embed(stats))


async def handle_help(ctx: BotContext, message: discord.Message) -> None:
    auto_del = max(5, int(ctx.settings.help_auto_delete_sec))
    text = HELP_TEXT + f"\n⏳ _このメッセージは{auto_del}秒後に削除されます。_"
    for part in chunk_message(text):
        sent = await message.channel.send(part)
        _spawn_background(delete_message_later(sent, auto_del))
    await safe_delete_message(message)


HANDLERS = {
    "ACTRECORD": handle_actrecord,
    "STRATEGIST": handle_strategist,
    "HELP": handle_help,
}


async def dispatch(ctx: BotContext, message: discord.Message) -> bool:
    """Run the handler for a command message. Returns True if one matched."""
    text = (message.content or "").strip()
    if not text:
        return False
    cmd = text.split()[0].upper()
    handler = HANDLERS.get(cmd)
    if handler is None:
        return False

    if _command_seen_recently(int(message.id)):
        logger.info("Duplicate command delivery detected -> skip: msg_id=%s", message.id)
        return True

    token = set_trace_id(_new_trace_id("discord"))
    logger.info("START %s msg=%s author=%s attachments=%d", cmd, message.id, message.author.id, len(message.attachments))
    try:
        await handler(ctx, message)
    except Exception as e:
        logger.exception("Command %s failed", cmd)
        try:
            await message.channel.send(
                f"❌ 処理中に予期せぬエラーが発生しました。\n```\n{str(e)[:150]}\n```\nログを確認してください。"
            )
        except discord.HTTPException:
            logger.exception("Failed to report error to channel")
    finally:
        logger.info("END %s msg=%s", cmd, message.id)
        reset_trace_id(token)
    return True


# ----------------------------
# Keepalive / API server
# ----------------------------

def build_web_app(ctx: BotContext) -> web.Application:
    app = web.Application()

    async def health(_request):
        return web.Response(text="ok", content_type="text/plain")

    async def api_matches(request):
        limit = None
        limit_raw = request.query.get("limit")
        if limit_raw:
            try:
                limit = max(1, int(limit_raw))
            except ValueError:
                limit = None
        async with ctx.store_lock:
            matches = await asyncio.to_thread(ctx.store.list_matches, True, limit)
        return web.json_response({"matches": matches, "count": len(matches)})

    app.router.add_get("/health", health)
    app.router.add_get("/api/matches", api_matches)
    return app


async def start_keepalive_server(ctx: BotContext) -> web.AppRunner:
    runner = web.AppRunner(build_web_app(ctx))
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", ctx.settings.port)
    await site.start()
    logger.info("HTTP listening on :%s (/health, /api/matches)", ctx.settings.port)
    return runner


def main():
    settings = Settings.from_env()
    setup_logging(settings)
    if not settings.discord_token:
        raise SystemExit("DISCORD_TOKEN が .env / 環境変数に設定されていません")
    if settings.watch_channel_id == 0:
        raise SystemExit("WATCH_CHANNEL_ID が .env / 環境変数に設定されていません")

    store = MatchStore(settings.store_path)

    intents = discord.Intents.default()
    intents.message_content = True
    client = discord.Client(intents=intents)

    state: Dict[str, Any] = {}

    def get_ctx() -> BotContext:
        # asyncio.Lock must be created inside the running loop on older Pythons
        if "ctx" not in state:
            lock = asyncio.Lock()
            state["ctx"] = BotContext(
                settings=settings,
                store=store,
                recorder=ActRecorder(store, store_lock=lock, leaderboard_size=settings.leaderboard_size),
                store_lock=lock,
            )
        return state["ctx"]

    @client.event
    async def on_ready():
        ctx = get_ctx()
        if "runner" not in state:
            state["runner"] = await start_keepalive_server(ctx)
        logger.info("Logged in as %s | watching channel %s", client.user, settings.watch_channel_id)

    @client.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return
        if message.channel.id != settings.watch_channel_id:
            return
        await dispatch(get_ctx(), message)

    client.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
