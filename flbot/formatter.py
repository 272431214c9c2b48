from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Union

import discord

from .constants import JOB_EMOJIS, UNKNOWN_JOB_EMOJI
from .schemas import Allegiance, FinalizedRecord, RecordOutcome, StrategistStats

COLOR_RED = 0xCF1E1E
COLOR_GREEN = 0x47FF47
COLOR_YELLOW = 0xFFFF00
COLOR_BLUE = 0x0099FF

SEPARATOR = "────────────────────"
ZWSP = "\u200b"

FIELD_NOTE = "⚠️ **注釈:** フィールドは優勝チームのポイントに基づいて自動判定しています。"


def format_number(num: Union[int, float, str, None]) -> str:
    if isinstance(num, bool) or num is None:
        return str(num)
    if isinstance(num, int):
        return f"{num:,}"
    if isinstance(num, float):
        if num.is_integer():
            return f"{int(num):,}"
        return f"{num:,.3f}".rstrip("0").rstrip(".")
    return str(num)


def job_emoji(job: Optional[str]) -> str:
    return JOB_EMOJIS.get((job or "").upper(), UNKNOWN_JOB_EMOJI)


def ally_mark(rec: FinalizedRecord) -> str:
    if rec.is_strategist:
        return "🚩"
    if rec.allegiance is Allegiance.friendly:
        return "🟢"
    if rec.allegiance is Allegiance.enemy:
        return "🔴"
    return "⚪"


def _placing_medal(idx: int) -> str:
    return ("🥇", "🥈", "🥉")[idx] if idx < 3 else f"{idx + 1}."


def _duration_text(seconds: Optional[int]) -> str:
    return f"{seconds}秒" if seconds else "不明"


def _leaderboard_line(idx: int, rec: FinalizedRecord) -> tuple[str, str]:
    dps = format_number(round(rec.dps))
    name = f"{ally_mark(rec)} {idx + 1}. {rec.name} {job_emoji(rec.job)} [{rec.job}] (DPS: {dps})"
    value = (
        f"**与ダメ:** {format_number(rec.damage)} | **被ダメ:** {format_number(rec.damagetaken)}"
        f" | **デス:** {rec.deaths}"
    )
    return name, value


def build_record_embed(outcome: RecordOutcome) -> discord.Embed:
    res = outcome.result
    summary = res.summary
    my_rank = res.self_record.rank if res.self_record else None
    if my_rank is None:
        my_rank = next((r.rank for r in summary.ranking if r.name == summary.my_team), "?")

    description = (
        f"**試合ID:** `{outcome.match_id}`\n"
        f"**自分のチーム:** {summary.my_team} ({my_rank}位)\n\n"
        f"戦闘記録を**{outcome.report.success_count}名**について登録しました。"
    )
    if outcome.report.fail_count:
        description += f"\n❌ 保存に失敗: {outcome.report.fail_count}名"
    description += "\n\n" + FIELD_NOTE

    embed = discord.Embed(
        title=f"✅ ACTフロントライン記録完了 ({summary.field})",
        description=description,
        color=COLOR_BLUE,
        timestamp=datetime.now(timezone.utc),
    )
    for idx, team in enumerate(summary.ranking[:3]):
        embed.add_field(name=f"{_placing_medal(idx)} {team.rank}位", value=f"{team.name} ({team.points}pt)", inline=True)

    strat = res.strategist_record
    if strat is not None:
        embed.add_field(
            name=SEPARATOR,
            value=f"**👑 軍師: {strat.name} {job_emoji(strat.job)} [{strat.job}]**",
            inline=False,
        )

    me = res.self_record
    if me is not None:
        embed.add_field(name=SEPARATOR, value=f"**👑 あなたの戦績 ({me.name} {job_emoji(me.job)} [{me.job}])**", inline=False)
        embed.add_field(name="キル/アシスト", value=f"**K:** {me.kills} / **A:** {me.assists}", inline=True)
        embed.add_field(
            name="与ダメージ / DPS",
            value=f"**Dmg:** {format_number(me.damage)} / **DPS:** {format_number(round(me.dps))}",
            inline=True,
        )
        embed.add_field(
            name="被ダメージ / デス",
            value=f"**被Dmg:** {format_number(me.damagetaken)} / **Death:** {me.deaths}",
            inline=True,
        )

    embed.add_field(name=ZWSP, value=f"**⚔️ 全員与ダメージランキング TOP {len(res.leaderboard)}**", inline=False)
    for idx, rec in enumerate(res.leaderboard):
        name, value = _leaderboard_line(idx, rec)
        embed.add_field(name=name, value=value, inline=False)

    recorder = outcome.linked_name or outcome.user_id
    embed.set_footer(text=f"記録者: {recorder} | 試合時間: {_duration_text(summary.estimated_duration)} | データベースに格納済み")
    return embed


def render_record_text(outcome: RecordOutcome) -> str:
    """Plain-text version of build_record_embed (CLI / logs)."""
    res = outcome.result
    summary = res.summary
    lines: List[str] = [
        f"ACTフロントライン記録 ({summary.field})",
        f"試合ID: {outcome.match_id}",
        f"自分のチーム: {summary.my_team}",
        f"試合時間: {_duration_text(summary.estimated_duration)}",
        f"保存: 成功 {outcome.report.success_count} / 失敗 {outcome.report.fail_count}",
        "",
    ]
    for team in summary.ranking:
        lines.append(f"{team.rank}位 {team.name} ({team.points}pt)")

    if res.strategist_record is not None:
        s = res.strategist_record
        lines += ["", f"軍師: {s.name} [{s.job}]"]
    if res.self_record is not None:
        me = res.self_record
        lines += [
            "",
            f"あなたの戦績: {me.name} [{me.job}]",
            f"  K {me.kills} / A {me.assists} | Dmg {format_number(me.damage)} | DPS {format_number(round(me.dps))}"
            f" | 被Dmg {format_number(me.damagetaken)} | Death {me.deaths}",
        ]

    lines += ["", f"与ダメージランキング TOP {len(res.leaderboard)}"]
    for idx, rec in enumerate(res.leaderboard):
        name, value = _leaderboard_line(idx, rec)
        lines.append(f"{name} {value.replace('**', '')}")
    return "\n".join(lines)


def strategist_color(win_rate: float) -> int:
    if win_rate >= 50:
        return COLOR_GREEN
    if win_rate >= 33.33:
        return COLOR_YELLOW
    return COLOR_RED


def build_strategist_embed(stats: StrategistStats) -> discord.Embed:
    embed = discord.Embed(
        title=f"🏆 軍師 戦績レポート: {stats.name}",
        description=f"総記録回数: **{stats.total_reports} 回**",
        color=strategist_color(stats.win_rate),
        timestamp=datetime.now(timezone.utc),
    )
    embed.add_field(
        name="⚔️ 最重要指標",
        value=f"**総勝利回数:** {stats.wins} 回\n**勝率:** `{stats.win_rate:.2f}%`",
        inline=True,
    )
    embed.add_field(
        name="💡 ジョブ/火力",
        value=(
            f"**最多ジョブ:** {job_emoji(stats.most_used_job)} [{stats.most_used_job}] ({stats.most_used_job_count}回)\n"
            f"**平均DPS:** `{format_number(round(stats.avg_dps))}`"
        ),
        inline=True,
    )
    embed.add_field(name=ZWSP, value=ZWSP, inline=False)
    embed.add_field(name="🥇 1位", value=f"{stats.rank_counts.get(1, 0)} 回", inline=True)
    embed.add_field(name="🥈 2位", value=f"{stats.rank_counts.get(2, 0)} 回", inline=True)
    embed.add_field(name="🥉 3位", value=f"{stats.rank_counts.get(3, 0)} 回", inline=True)
    embed.set_footer(text="記録はACTデータに基づきます。")
    return embed


def build_error_embed(title: str, text: str) -> discord.Embed:
    return discord.Embed(title=f"❌ {title}", description=text, color=COLOR_RED)


def chunk_message(msg: str, limit: int = 1900) -> List[str]:
    chunks: List[str] = []
    msg = msg.strip()
    while len(msg) > limit:
        cut = msg.rfind("\n", 0, limit)
        if cut == -1:
            cut = limit
        chunks.append(msg[:cut])
        msg = msg[cut:].lstrip("\n")
    if msg:
        chunks.append(msg)
    return chunks
