"""
Giveaway Manager - Core giveaway logic

Handles the giveaway lifecycle: /create, entering/leaving via the button,
listing participants, and the delayed draw that closes a giveaway.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import discord
from sqlalchemy.exc import SQLAlchemyError

from core.dispatcher import DeferredRunner
from core.errors import UpstreamFailure
from core.registry import COMMAND, LABEL, HandlerRegistry
from core.responses import deferred_response, display_name, get_option, interaction_user, message_response
from utils.logging_config import log_error

from .colors import accent_color_for
from .duration import parse_duration
from .models import GiveawayRecord, Participant
from .queue import DelayedTaskQueue, ScheduledDrawTask, TaskAbandoned, TaskDeferred
from .store import ConcurrentUpdateError, GiveawayStore

logger = logging.getLogger(__name__)

ACTION_LABEL = "action"
INFO_LABEL = "info"


@dataclass
class CreateOptions:
    prize: str
    duration: timedelta
    message: str
    image: Optional[str] = None
    winners: int = 1


def pick_winners(participants: List[Participant], count: int, rng=None) -> List[Participant]:
    """
    Draw min(count, len(participants)) distinct winners.

    Every participant gets an independent random sort key; the lowest keys win.
    """
    rng = rng or secrets.SystemRandom()
    keyed = [(rng.random(), participant) for participant in participants]
    keyed.sort(key=lambda item: item[0])
    return [participant for _, participant in keyed[:max(count, 0)]]


def build_announcement(interaction_id: str, host_id: str, options: CreateOptions, ends_at: datetime,
                       color: int) -> Dict[str, Any]:
    """Giveaway message: embed plus enter/leave and participants buttons"""
    winners = options.winners
    embed = discord.Embed(
        title="New giveaway!",
        description=f"Click the button and have a chance to win:\n```md\n{options.prize}\n```",
        color=color,
    )
    embed.add_field(name="Hosted by", value=f"<@{host_id}>", inline=True)
    embed.add_field(name="Ends", value=discord.utils.format_dt(ends_at, "R"), inline=True)
    embed.add_field(name="Winners", value=f"`{winners}` {'people' if winners > 1 else 'person'}", inline=True)
    embed.add_field(name="Message", value=f"> {options.message}", inline=False)
    if options.image:
        embed.set_image(url=options.image)

    return {
        "embeds": [embed.to_dict()],
        "components": [{
            "type": discord.ComponentType.action_row.value,
            "components": [{
                "type": discord.ComponentType.button.value,
                "style": discord.ButtonStyle.primary.value,
                "emoji": {"name": "🎉"},
                "custom_id": f"{ACTION_LABEL}_{interaction_id}",
            }, {
                "type": discord.ComponentType.button.value,
                "style": discord.ButtonStyle.secondary.value,
                "label": "info",
                "emoji": {"name": "👥"},
                "custom_id": f"{INFO_LABEL}_{interaction_id}",
            }],
        }],
    }


def build_ended_message(original: Dict[str, Any], winners: List[Participant]) -> Dict[str, Any]:
    """
    Edit body for a finished giveaway.

    Title switches to the ended state, the Winners field lists the winners,
    "Ends" becomes "Ended", other fields stay, and every button is disabled.
    """
    embeds = original.get("embeds") or []
    embed = discord.Embed.from_dict(embeds[0]) if embeds else discord.Embed()
    embed.title = "Giveaway ended!"

    winners_text = "\n".join(f"<@{w.id}>" for w in winners) if winners else "`No winners`"
    for index, field in enumerate(embed.fields):
        if field.name == "Winners":
            embed.set_field_at(index, name="Winners", value=winners_text, inline=field.inline)
        elif field.name == "Ends":
            embed.set_field_at(index, name="Ended", value=field.value, inline=field.inline)

    return {"embeds": [embed.to_dict(), *embeds[1:]], "components": disable_components(original.get("components"))}


def disable_components(rows) -> List[Dict[str, Any]]:
    """Copy of the action rows with every component disabled"""
    return [
        {**row, "components": [{**component, "disabled": True} for component in row.get("components") or []]}
        for row in rows or []
    ]


class GiveawayManager:
    """Giveaway commands, buttons and the draw procedure"""

    def __init__(self, store: GiveawayStore, queue: DelayedTaskQueue, rest, runner: DeferredRunner,
                 publisher=None, color_resolver=accent_color_for, max_duration: timedelta = timedelta(days=30),
                 claim_timeout: float = 300, clock=None, rng=None):
        self.store = store
        self.queue = queue
        self.rest = rest
        self.runner = runner
        self.publisher = publisher
        self.color_resolver = color_resolver
        self.max_duration = max_duration
        self.claim_timeout = claim_timeout
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.rng = rng

    def register_handlers(self, registry: HandlerRegistry):
        registry.register(COMMAND, "hello", self.hello)
        registry.register(COMMAND, "create", self.create)
        registry.register(LABEL, ACTION_LABEL, self.toggle_participation)
        registry.register(LABEL, INFO_LABEL, self.list_participants)

    # -------------------------
    # Commands
    # -------------------------

    def hello(self, interaction):
        username = interaction_user(interaction).get("username")
        return message_response(f"Hello `{username}`!", ephemeral=False)

    def create(self, interaction):
        """
        /create prize duration message [image] [winners]

        Bad input is answered immediately; everything else is acknowledged
        with a deferred response and finished by create_giveaway().
        """
        prize = get_option(interaction, "prize")
        duration_text = get_option(interaction, "duration")
        description = get_option(interaction, "message")

        if not prize or not duration_text or not description:
            return message_response("Missing required options: prize, duration and message")

        duration = parse_duration(duration_text)
        if duration is None:
            return message_response("Invalid duration")

        if duration > self.max_duration:
            return message_response(f"Duration is too long (max {self.max_duration.days} days)")

        try:
            winners = int(get_option(interaction, "winners", 1))
        except (TypeError, ValueError):
            winners = 0
        if winners < 1:
            return message_response("Winners must be at least 1")

        options = CreateOptions(
            prize=prize,
            duration=duration,
            message=description,
            image=get_option(interaction, "image"),
            winners=winners,
        )
        self.runner.submit(self.create_giveaway, interaction, options)
        return deferred_response()

    def create_giveaway(self, interaction, options: CreateOptions) -> ScheduledDrawTask:
        """
        Post the announcement, then persist the record and its draw task.

        Raises:
            UpstreamFailure: The announcement could not be posted; nothing is persisted
            SQLAlchemyError: Persisting failed; the posted announcement is disabled
        """
        interaction_id = str(interaction["id"])
        channel_id = str(interaction["channel_id"])
        host_id = interaction_user(interaction).get("id")

        color = self.color_resolver(options.image)
        started_at = self.clock()
        ends_at = started_at + options.duration

        body = build_announcement(interaction_id, host_id, options, ends_at, color)
        try:
            message = self.rest.post_message(channel_id, body)
        except UpstreamFailure:
            self._edit_placeholder(interaction, "Failed to create giveaway")
            raise

        record = GiveawayRecord(
            prize=options.prize,
            started_at=started_at,
            ends_at=ends_at,
            winners=options.winners,
        )
        task = ScheduledDrawTask(interaction_id, channel_id, str(message["id"]))

        # Record and draw task commit together
        try:
            with self.store.engine.begin() as conn:
                self.store.create(interaction_id, record, conn=conn)
                self.queue.enqueue(task.encode(), options.duration, conn=conn)
        except SQLAlchemyError:
            self._edit_placeholder(interaction, "Failed to create giveaway")
            self._disable_announcement(task, body)
            raise

        logger.info(f"🎉 Giveaway {interaction_id} created in channel {channel_id}, ends {ends_at.isoformat()}")

        self._edit_placeholder(interaction, f"Giveaway created at <#{channel_id}>!")
        if self.publisher:
            self.publisher.publish_giveaway_created(
                interaction_id, channel_id, task.message_id, options.prize, ends_at, options.winners
            )
        return task

    def _disable_announcement(self, task: ScheduledDrawTask, body):
        try:
            components = disable_components(body.get("components"))
            self.rest.patch_message(task.channel_id, task.message_id, {"components": components})
        except UpstreamFailure as e:
            log_error(logger, e, f"Could not disable announcement for giveaway {task.interaction_id}")

    def _edit_placeholder(self, interaction, content):
        try:
            self.rest.edit_original_response(
                interaction["token"],
                {"content": content},
                application_id=interaction.get("application_id"),
            )
        except UpstreamFailure as e:
            log_error(logger, e, f"Could not edit placeholder for interaction {interaction.get('id')}")

    # -------------------------
    # Buttons
    # -------------------------

    def toggle_participation(self, interaction, giveaway_id):
        """Enter the giveaway, or leave it if already entered"""
        user_id = interaction_user(interaction).get("id")
        if not giveaway_id or not user_id:
            return message_response("Giveaway not found")

        user_id = str(user_id)
        name = display_name(interaction)

        try:
            record = self.store.update(giveaway_id, lambda r: r.toggle(user_id, name))
        except ConcurrentUpdateError as e:
            logger.warning(f"⚠️ {e}")
            return message_response("Too many people are joining right now, please try again")

        if record is None:
            return message_response("Giveaway not found")

        if record.is_participant(user_id):
            logger.debug(f"{user_id} entered giveaway {giveaway_id}")
            return message_response("You have entered the giveaway!")

        logger.debug(f"{user_id} left giveaway {giveaway_id}")
        return message_response("You have left this giveaway")

    def list_participants(self, interaction, giveaway_id):
        record = self.store.get(giveaway_id) if giveaway_id else None
        if not record or not record.participants:
            return message_response("No one is participating yet")

        mentions = "\n".join(f"* <@{p.id}>" for p in record.participants)
        return message_response(f"## people participating:\n{mentions}")

    # -------------------------
    # Draw
    # -------------------------

    def handle_draw_task(self, payload: str):
        """Queue consumer entry point"""
        return self.draw(ScheduledDrawTask.decode(payload))

    def draw(self, task: ScheduledDrawTask) -> Optional[List[Participant]]:
        """
        Close a giveaway and announce its winners.

        Returns:
            The winners, or None when the giveaway was already handled

        Raises:
            TaskDeferred: Another delivery holds the draw claim
            TaskAbandoned: Original message is gone; the record was deleted
            UpstreamFailure: Editing the message failed; the record is released for a retry
        """
        record = self.store.claim(task.interaction_id, stale_after=self.claim_timeout)
        if record is None:
            held_for = self.store.held_for(task.interaction_id, stale_after=self.claim_timeout)
            if held_for is None:
                logger.info(f"Giveaway {task.interaction_id} already drawn or missing, skipping")
                return None
            # Claimed by another delivery that may have died; wait out its claim
            raise TaskDeferred(
                f"Giveaway {task.interaction_id} is being drawn by another delivery",
                retry_after=held_for + 1,
            )

        winners = pick_winners(record.participants, record.winners, self.rng)
        logger.info(
            f"🎲 Drawing giveaway {task.interaction_id}: "
            f"{len(winners)} winner(s) from {len(record.participants)} participant(s)"
        )

        try:
            original = self.rest.fetch_message(task.channel_id, task.message_id)
        except UpstreamFailure as e:
            self.store.delete(task.interaction_id)
            raise TaskAbandoned(f"Failed to fetch original message for giveaway {task.interaction_id}: {e}") from e

        body = build_ended_message(original, winners)
        try:
            self.rest.patch_message(task.channel_id, task.message_id, body)
        except UpstreamFailure:
            self.store.release(task.interaction_id)
            raise

        self.store.delete(task.interaction_id)
        logger.info(f"🏆 Giveaway {task.interaction_id} ended")

        if self.publisher:
            self.publisher.publish_giveaway_ended(
                task.interaction_id, task.channel_id, task.message_id, [w.id for w in winners]
            )
        return winners
