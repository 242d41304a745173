"""Button-driven pagination for multi-embed replies."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import discord

from kestrel.util import discord_utils
from kestrel.util.logger import get_logger

logger = get_logger("paginator")

IDLE_TIMEOUT_SECONDS = 120
DEFAULT_EMOJIS = ("⏮️", "⬅️", "➡️", "⏭️")
PAGE_ACTIONS = ("backskip", "back", "next", "nextskip")


def turn_page(current: int, action: str, page_count: int) -> int:
    """Return the page index after pressing ``action``; back/next wrap around."""
    if page_count <= 0:
        return 0
    if action == "backskip":
        return 0
    if action == "nextskip":
        return page_count - 1
    if action == "back":
        return current - 1 if current > 0 else page_count - 1
    if action == "next":
        return current + 1 if current < page_count - 1 else 0
    return current


class PaginatorView(discord.ui.View):
    """Four navigation buttons, usable only by the invoking user.

    After :data:`IDLE_TIMEOUT_SECONDS` without a press the buttons are
    disabled and greyed out on the message.
    """

    def __init__(
        self,
        embeds: Sequence[discord.Embed],
        user_id: int,
        *,
        emojis: Sequence[str] = DEFAULT_EMOJIS,
        timeout_seconds: float = IDLE_TIMEOUT_SECONDS,
    ):
        super().__init__(timeout=timeout_seconds)
        self.embeds: List[discord.Embed] = list(embeds)
        self._base_footers: List[Tuple[str, Optional[str]]] = [
            (getattr(embed.footer, "text", None) or "", getattr(embed.footer, "icon_url", None) or None)
            for embed in self.embeds
        ]
        self.user_id = user_id
        self.page = 0
        self.message: Optional[discord.Message] = None
        for action, emoji in zip(PAGE_ACTIONS, emojis):
            self.add_item(PageButton(action, emoji))

    def current_embed(self) -> discord.Embed:
        """The current page, its own footer extended with the page counter."""
        embed = self.embeds[self.page]
        text, icon_url = self._base_footers[self.page]
        counter = f"Page {self.page + 1} of {len(self.embeds)}"
        footer_text = f"{text} | {counter}" if text else counter
        if icon_url:
            embed.set_footer(text=footer_text, icon_url=icon_url)
        else:
            embed.set_footer(text=footer_text)
        return embed

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user is not None and interaction.user.id == self.user_id

    async def on_timeout(self) -> None:  # pragma: no cover - relies on Discord timers
        for child in self.children:
            if isinstance(child, discord.ui.Button):
                child.disabled = True
                child.style = discord.ButtonStyle.secondary
        if self.message is not None:
            try:
                await self.message.edit(embed=self.current_embed(), view=self)
            except discord.HTTPException as exc:
                logger.debug("Could not disable paginator controls: %s", exc)


class PageButton(discord.ui.Button):
    """One navigation button of a :class:`PaginatorView`."""

    def __init__(self, action: str, emoji: str):
        super().__init__(style=discord.ButtonStyle.primary, emoji=emoji)
        self.action = action

    async def callback(self, interaction: discord.Interaction) -> None:  # pragma: no cover - requires Discord runtime
        view: PaginatorView = self.view  # type: ignore[assignment]
        view.page = turn_page(view.page, self.action, len(view.embeds))
        await interaction.response.edit_message(embed=view.current_embed(), view=view)


async def send_paginated(
    invocation: discord_utils.Invocation,
    embeds: Sequence[discord.Embed],
    user_id: int,
) -> Optional[discord.Message]:
    """Reply with the first embed and navigation buttons (no buttons for a single page)."""
    if not embeds:
        logger.error("Invalid arguments for send_paginated: no embeds")
        return None

    if len(embeds) == 1:
        return await discord_utils.reply(invocation, embed=embeds[0])

    view = PaginatorView(embeds, user_id)
    message = await discord_utils.reply(invocation, embed=view.current_embed(), view=view)
    view.message = message
    return message
