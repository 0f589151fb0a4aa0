import logging
from typing import TYPE_CHECKING

import discord

from models import RunRecord
from utils.embeds import ErrorEmbed, SuccessEmbed

if TYPE_CHECKING:
    from cogs.runs import RunsCog

logger = logging.getLogger("tally")


class ConfirmDeleteRunView(discord.ui.View):
    """
    A view asking the host to confirm deleting a run with all of its drops and sales.
    """

    def __init__(self, cog: "RunsCog", run: RunRecord, user_id: int) -> None:
        super().__init__(timeout=60)

        self.cog: "RunsCog" = cog
        self.run: RunRecord = run
        self.user_id: int = user_id

    async def on_error(self, error, _: discord.ui.Item, interaction: discord.Interaction) -> None:
        logger.error("[RUNS] ConfirmDeleteRunView Error", exc_info=error)
        await interaction.followup.send(embed=ErrorEmbed(), ephemeral=True)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user is not None and interaction.user.id == self.user_id

    @discord.ui.button(label="Delete", style=discord.ButtonStyle.red, custom_id="confirm_delete_run")
    async def confirm(self, _: discord.ui.Button, interaction: discord.Interaction):
        """Handle delete button press."""

        await interaction.response.defer(ephemeral=True)
        self.disable_all_items()
        self.stop()

        run = await self.cog.ledger.delete_run(self.run.id)
        await self.cog.invalidate_run(run.run_number)

        embed = SuccessEmbed(title="Run Deleted", description=f"Run #{run.run_number} and all of its drops and sales were deleted")
        await interaction.edit_original_response(embed=embed, view=None)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.grey, custom_id="cancel_delete_run")
    async def cancel(self, _: discord.ui.Button, interaction: discord.Interaction):
        """Handle cancel button press."""

        self.stop()
        embed = SuccessEmbed(title="Cancelled", description=f"Run #{self.run.run_number} was left untouched")
        await interaction.response.edit_message(embed=embed, view=None)
