"""
Slash-command drift reconciliation.

On startup the locally built umbrella commands are compared with what Discord
currently has registered, and only the differences are pushed:

1. fetch the registered commands of every scope in use (the application for
   global mode, each joined guild for per-guild mode),
2. match local targets to remote commands by name and diff the normalised
   forms (:func:`plan_reconciliation`),
3. apply deletions, then updates, then additions. Operations of one phase run
   concurrently and each failure is logged without affecting the others.

Running the whole cycle twice with nothing changed in between produces an
empty plan the second time.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Iterable, List, Mapping, Optional, Sequence

from kestrel.commands.builder import CommandPayload
from kestrel.commands.differ import find_differences
from kestrel.commands.normalizer import normalize
from kestrel.commands.remote import GLOBAL_SCOPE, ApplicationCommandClient, CommandScope, RemoteCommand
from kestrel.util.logger import get_logger

logger = get_logger("command_reconciler")


def find_command_changes(target: CommandPayload, remote: Any) -> Optional[Dict[str, Any]]:
    """Return the part of ``target`` that ``remote`` does not already match, or None.

    The remote side is restricted to the keys the target produces, so
    bookkeeping fields such as ``id`` or ``version`` never count as drift.
    """
    normalized_target = normalize(target) or {}
    normalized_remote = normalize(remote, keys_to_keep=normalized_target.keys())
    return find_differences(normalized_target, normalized_remote)


@dataclass
class CommandUpdate:
    """A registered command whose definition changed locally."""

    remote: RemoteCommand
    target: CommandPayload
    patch: Dict[str, Any]

    def edit_payload(self) -> CommandPayload:
        """Full values of every top-level field that changed, as sent to the edit route."""
        return {key: self.target[key] for key in self.patch if key in self.target}


@dataclass
class ReconciliationPlan:
    """Add/update/delete sets for one scope."""

    scope: CommandScope
    to_add: List[CommandPayload] = field(default_factory=list)
    to_update: List[CommandUpdate] = field(default_factory=list)
    to_delete: List[RemoteCommand] = field(default_factory=list)
    unchanged: List[RemoteCommand] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_update or self.to_delete)


@dataclass
class ReconciliationSummary:
    """Aggregate outcome of one reconciliation pass."""

    added: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    failed: int = 0


def plan_reconciliation(
    targets: Mapping[str, CommandPayload],
    remote: Sequence[RemoteCommand],
    scope: CommandScope = GLOBAL_SCOPE,
) -> ReconciliationPlan:
    """Compare local targets with the remote commands of a single scope.

    Args:
        targets: Umbrella command payloads keyed by category name.
        remote: Commands currently registered in ``scope``.
        scope: The scope being planned; additions are created there.

    Returns:
        A plan whose three sets are disjoint: every target lands in either
        ``to_add`` or (via its remote match) ``to_update``/``unchanged``, and
        every remote command lands in exactly one of ``to_update``,
        ``unchanged`` or ``to_delete``.
    """
    plan = ReconciliationPlan(scope=scope)
    matched: set[int] = set()

    for target in targets.values():
        matches = [command for command in remote if command.name == target["name"]]
        if not matches:
            plan.to_add.append(target)
            continue

        for command in matches:
            matched.add(command.id)
            patch = find_command_changes(target, command)
            if patch is None:
                plan.unchanged.append(command)
            else:
                plan.to_update.append(CommandUpdate(remote=command, target=target, patch=patch))

    plan.to_delete = [command for command in remote if command.id not in matched]
    return plan


class CommandReconciler:
    """Keeps Discord's registered slash commands in line with the loaded definitions.

    Args:
        client: Remote command access.
        targets: Umbrella command payloads keyed by category name.
        slash_global: True for application-wide registration, False for per-guild.
        purge_foreign_scope: Delete commands registered in the scope not in use.
    """

    def __init__(
        self,
        client: ApplicationCommandClient,
        targets: Mapping[str, CommandPayload],
        *,
        slash_global: bool,
        purge_foreign_scope: bool = True,
    ) -> None:
        self.client = client
        self.targets = dict(targets)
        self.slash_global = slash_global
        self.purge_foreign_scope = purge_foreign_scope

    @property
    def mode(self) -> str:
        return "global" if self.slash_global else "per-guild"

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _fetch_guild_commands(self, guild_ids: Sequence[int]) -> Dict[int, List[RemoteCommand]]:
        """Fetch every guild's commands; a failed guild counts as having none."""
        scopes = [CommandScope(guild_id) for guild_id in guild_ids]
        results = await asyncio.gather(*(self.client.fetch(scope) for scope in scopes), return_exceptions=True)

        fetched: Dict[int, List[RemoteCommand]] = {}
        for scope, result in zip(scopes, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("[RECONCILER] Could not fetch commands for %s: %s", scope, result)
                fetched[scope.guild_id] = []
            else:
                fetched[scope.guild_id] = result
        return fetched

    async def build_plans(self, guild_ids: Sequence[int]) -> List[ReconciliationPlan]:
        """Fetch the remote state and return one plan per scope."""
        plans: List[ReconciliationPlan] = []

        if self.slash_global:
            try:
                remote = await self.client.fetch(GLOBAL_SCOPE)
            except Exception as exc:
                logger.error("[RECONCILER] Could not fetch global commands, skipping reconciliation: %s", exc)
                return plans
            plans.append(plan_reconciliation(self.targets, remote, GLOBAL_SCOPE))

            if self.purge_foreign_scope:
                for guild_id, commands in (await self._fetch_guild_commands(guild_ids)).items():
                    if commands:
                        plans.append(ReconciliationPlan(scope=CommandScope(guild_id), to_delete=list(commands)))
            return plans

        for guild_id, commands in (await self._fetch_guild_commands(guild_ids)).items():
            scope = CommandScope(guild_id)
            plans.append(plan_reconciliation(self.targets, commands, scope))

        if self.purge_foreign_scope:
            try:
                stale = await self.client.fetch(GLOBAL_SCOPE)
            except Exception as exc:
                logger.warning("[RECONCILER] Could not fetch global commands for cleanup: %s", exc)
                stale = []
            if stale:
                plans.append(ReconciliationPlan(scope=GLOBAL_SCOPE, to_delete=stale))
        return plans

    # ------------------------------------------------------------------
    # Applying
    # ------------------------------------------------------------------

    @staticmethod
    async def _attempt(action: str, name: str, scope: CommandScope, operation: Awaitable[Any]) -> bool:
        try:
            await operation
        except Exception as exc:
            logger.error("[RECONCILER] Failed to %s command '%s' (%s): %s", action, name, scope, exc)
            return False
        logger.debug("[RECONCILER] %s command '%s' (%s)", action.capitalize(), name, scope)
        return True

    async def _run_phase(self, attempts: Iterable[Awaitable[bool]]) -> tuple[int, int]:
        results = await asyncio.gather(*attempts)
        succeeded = sum(1 for result in results if result)
        return succeeded, len(results) - succeeded

    async def apply(self, plans: Sequence[ReconciliationPlan]) -> ReconciliationSummary:
        """Apply deletions, then updates, then additions across all plans."""
        summary = ReconciliationSummary(unchanged=sum(len(plan.unchanged) for plan in plans))

        deleted, failed = await self._run_phase(
            self._attempt("delete", command.name, plan.scope, self.client.delete(command))
            for plan in plans
            for command in plan.to_delete
        )
        summary.deleted, summary.failed = deleted, summary.failed + failed

        updated, failed = await self._run_phase(
            self._attempt("update", update.remote.name, plan.scope, self.client.edit(update.remote, update.edit_payload()))
            for plan in plans
            for update in plan.to_update
        )
        summary.updated, summary.failed = updated, summary.failed + failed

        added, failed = await self._run_phase(
            self._attempt("add", target["name"], plan.scope, self.client.create(plan.scope, target))
            for plan in plans
            for target in plan.to_add
        )
        summary.added, summary.failed = added, summary.failed + failed

        return summary

    async def reconcile(self, guild_ids: Sequence[int]) -> ReconciliationSummary:
        """Run one full fetch/plan/apply cycle. Never raises for remote failures."""
        plans = await self.build_plans(guild_ids)
        summary = await self.apply(plans)
        logger.info(
            "[RECONCILER] %s slash commands: %d added, %d updated, %d deleted, %d unchanged, %d failed",
            self.mode,
            summary.added,
            summary.updated,
            summary.deleted,
            summary.unchanged,
            summary.failed,
        )
        return summary

    async def register_guild(self, guild_id: int) -> bool:
        """Push every target to a newly joined guild (per-guild mode only)."""
        if self.slash_global:
            return False
        scope = CommandScope(guild_id)
        try:
            await self.client.overwrite(scope, list(self.targets.values()))
        except Exception as exc:
            logger.error("[RECONCILER] Error setting commands for %s: %s", scope, exc)
            return False
        logger.info("[RECONCILER] Registered %d slash commands in %s", len(self.targets), scope)
        return True
