import discord

from models import PlayerRecord

from ..common import format_ws


class PlayersEmbed(discord.Embed):
    """A custom embed class listing players and what they are owed."""

    def __init__(self, players: list[tuple[PlayerRecord, float]], **kwargs) -> None:
        super().__init__(title="Players", colour=discord.Colour.blurple(), **kwargs)

        if not players:
            self.description = "*No players yet - use `/player add` to register one.*"
            return

        lines: list[str] = []
        for player, owed_ws in players:
            mention = f" (<@{player.discord_id}>)" if player.discord_id else ""
            owed = f"`{format_ws(owed_ws)}` owed" if owed_ws else "nothing owed"
            lines.append(f"**{player.name}**{mention} • {owed}")

        self.description = "\n".join(lines)[:4096]

        total_owed = sum(owed for _, owed in players)
        self.set_footer(text=f"{len(players)} player(s) • {format_ws(total_owed)} owed in total")
