import discord

from models import PlayerRecord, SaleRecord

from ..common import dt_to_psx, format_ws


class SaleEmbed(discord.Embed):
    """
    A custom embed class for displaying a sale and its split.
    """

    def __init__(self, sale: SaleRecord, run_number: int, players: dict[str, PlayerRecord], **kwargs) -> None:
        super().__init__(
            title=f"Sale • Run #{run_number}",
            colour=discord.Colour.green() if sale.is_settled else discord.Colour.blurple(),
            **kwargs,
        )

        self.add_field(name="Buyer", value=sale.buyer[:1024], inline=True)
        self.add_field(name="Date", value=f"<t:{int(dt_to_psx(sale.date))}:R>", inline=True)
        self.add_field(name="Drops", value=f"`{len(sale.drop_ids)}`", inline=True)

        self.add_field(name="Gross", value=f"`{format_ws(sale.total_price_ws)}`", inline=True)
        self.add_field(name="Net After Fees", value=f"`{format_ws(sale.net_after_fees_ws)}`", inline=True)
        self.add_field(name="Settled", value="✅ Yes" if sale.is_settled else "⏳ No", inline=True)

        lines = []
        for detail in sale.split_details:
            player = players.get(detail.player_id)
            name = player.name if player else detail.player_id
            paid = "✅" if detail.is_paid else "⏳"
            lines.append(f"{paid} **{name}**: `{format_ws(detail.amount_ws)}`")

        self.add_field(name="Split", value="\n".join(lines)[:1024] or "*Nobody to split with.*", inline=False)

        if sale.net_after_fees_ws < 0:
            self.add_field(
                name="Entry Fee Clawback",
                value="The unpaid entry fee was larger than this sale, participants owe the difference back.",
                inline=False,
            )

        self.set_footer(text=f"Sale ID: {sale.id}")
