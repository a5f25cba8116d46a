import asyncio
from typing import Dict, List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from derby_draw.config import env_flag, get_config
from derby_draw.engine import AsyncioTickScheduler, DrawError, Phase, ResultEntry, TickSnapshot
from derby_draw.engine.race_loop import DEFAULT_WINNERS
from derby_draw.simulation import DrawSession, parse_participants

BAR_WIDTH = int(get_config("discord.bar_width", 20))
VERBOSE_SESSIONS = env_flag("DERBY_DRAW_VERBOSE")


def render_progress_bar(progress: float, width: int = BAR_WIDTH) -> str:
    progress = min(max(progress, 0.0), 1.0)
    filled = int(progress * width)
    return "#" * filled + "." * (width - filled)


def render_draw_board(snapshot: TickSnapshot, width: int = BAR_WIDTH) -> str:
    lines = []
    for racer in snapshot.racers:
        label = racer.event.label
        flag = " FIN" if racer.is_finished else (f" {label}" if label else "")
        lines.append(
            f"{racer.lane + 1:>2} {racer.name[:18]:<18} [{render_progress_bar(racer.progress, width)}] "
            f"{int(racer.progress * 100):>3}%{flag}"
        )
    return "\n".join(lines) if lines else "No runners on the track."


def render_commentary(snapshot: TickSnapshot) -> str:
    if not snapshot.leaderboard:
        return "Waiting for the gates to open."
    lines = []
    for entry in snapshot.leaderboard:
        gap = f" (+{entry.gap_percent:.1f}%)" if entry.gap_percent > 0 else ""
        lines.append(f"{entry.rank}. {entry.name} at {entry.progress * 100:.1f}%{gap}")
    if snapshot.slow_motion:
        lines.append("Slow motion: it's coming down to the wire!")
    return "\n".join(lines)


def format_standings(results: List[ResultEntry], winners: List[str]) -> str:
    winner_set = set(winners)
    lines = []
    for entry in results:
        marker = " *" if entry.name in winner_set else ""
        lines.append(f"{entry.describe()}{marker}")
    return "\n".join(lines) if lines else "No standings recorded."


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class DrawBroadcastCog(commands.Cog):
    """Runs draws in Discord channels and mirrors them into a live embed."""

    BROADCAST_INTERVAL_SECONDS = float(get_config("discord.broadcast_interval_seconds", 1.8))

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.sessions: Dict[int, DrawSession] = {}
        self.playback_tasks: Dict[int, asyncio.Task] = {}

    async def cog_unload(self):
        for channel_id in list(self.sessions.keys()):
            self.abort_draw(channel_id)

    @app_commands.command(name="racedraw", description="Pick winners with a horse race.")
    @app_commands.describe(
        names="Participants, separated by commas, semicolons or new lines.",
        winners="How many winners to draw.",
        seed="Optional seed to make the draw replayable.",
    )
    async def racedraw(
        self,
        interaction: discord.Interaction,
        names: str,
        winners: int = DEFAULT_WINNERS,
        seed: Optional[str] = None,
    ):
        participants = parse_participants(names)
        if not participants:
            await interaction.response.send_message("Give me at least one participant to race.", ephemeral=True)
            return

        channel_id = interaction.channel_id or 0
        self.abort_draw(channel_id)

        session = DrawSession(scheduler=AsyncioTickScheduler(), verbose=VERBOSE_SESSIONS)
        try:
            race = session.start(participants, num_winners=winners, seed=seed)
        except DrawError as err:
            await interaction.response.send_message(str(err), ephemeral=True)
            return
        self.sessions[channel_id] = session

        seed_text = f" (seed `{race.seed}`)" if race.seed else ""
        await interaction.response.send_message(
            f"And they're off! {len(race.runners)} runners racing for {race.num_winners} spot(s){seed_text}."
        )
        message = await interaction.original_response()
        print(f"[DrawBroadcast] Draw started in channel {channel_id} with {len(race.runners)} runners.")
        self.playback_tasks[channel_id] = self.bot.loop.create_task(
            self.playback_draw(channel_id, session, message)
        )

    @app_commands.command(name="racedraw_reset", description="Abort the draw running in this channel.")
    async def racedraw_reset(self, interaction: discord.Interaction):
        channel_id = interaction.channel_id or 0
        if self.abort_draw(channel_id):
            await interaction.response.send_message("Draw aborted.")
        else:
            await interaction.response.send_message("No draw is running here.", ephemeral=True)

    def abort_draw(self, channel_id: int) -> bool:
        task = self.playback_tasks.pop(channel_id, None)
        if task is not None:
            task.cancel()
        session = self.sessions.pop(channel_id, None)
        if session is None:
            return False
        session.reset()
        print(f"[DrawBroadcast] Draw in channel {channel_id} reset.")
        return True

    async def playback_draw(self, channel_id: int, session: DrawSession, message: discord.Message):
        try:
            while session.phase is Phase.RACE:
                embed = self.render_draw_snapshot(session.loop.snapshot())
                try:
                    await message.edit(content=None, embed=embed)
                except discord.HTTPException as err:
                    print(f"[DrawBroadcast] Failed to edit live message in channel {channel_id}: {err}")
                await asyncio.sleep(self.BROADCAST_INTERVAL_SECONDS)

            race = session.race
            if race is not None and race.results:
                await self.post_final_standings(message, session.loop.snapshot())
            if session.handle is not None:
                await session.handle.wait()
        except Exception as err:
            print(f"[DrawBroadcast] Playback error in channel {channel_id}: {err}")
        finally:
            if self.sessions.get(channel_id) is session:
                self.sessions.pop(channel_id, None)
                self.playback_tasks.pop(channel_id, None)

    def render_draw_snapshot(self, snapshot: TickSnapshot) -> discord.Embed:
        embed = discord.Embed(
            title=f"Race Draw - {snapshot.elapsed:.1f}s",
            color=discord.Color.gold(),
        )
        board_value = _clip(f"```text\n{render_draw_board(snapshot)}\n```", 1024)
        if not board_value.endswith("```"):
            board_value = board_value[:1010] + "\n...```"
        embed.add_field(name="Track", value=board_value, inline=False)
        embed.add_field(name="Leaders", value=_clip(render_commentary(snapshot), 1024), inline=False)
        embed.set_footer(text="Watch the action unfold live.")
        return embed

    async def post_final_standings(self, message: discord.Message, snapshot: TickSnapshot):
        embed = discord.Embed(
            title="Race Draw - Final Standings",
            description=_clip(format_standings(snapshot.results, snapshot.winners), 4096),
            color=discord.Color.green(),
        )
        embed.add_field(name="Winners", value=_clip(", ".join(snapshot.winners) or "-", 1024), inline=False)
        try:
            await message.edit(content=None, embed=embed)
        except discord.HTTPException as err:
            print(f"[DrawBroadcast] Failed to post final standings: {err}")


async def setup(bot: commands.Bot):
    await bot.add_cog(DrawBroadcastCog(bot))
    print("DrawBroadcastCog loaded.")
