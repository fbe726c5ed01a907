"""Best-effort propagation of committed robberies to secondary systems"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from kingpin_gateway.domain.constants import Objective, RecordType, TerritoryActivity
from kingpin_gateway.domain.models import AccountSnapshot, CommitReceipt, RobberyOutcome
from kingpin_gateway.infrastructure.observability.metrics import side_effect_failure_counter

logger = logging.getLogger(__name__)


class Leaderboard(Protocol):
    async def record_rob_attempt(
        self, account_id: int, success: bool, wealth_delta: int, experience_delta: int
    ) -> None: ...

    async def check_record(self, account_id: int, record_type: str, value: int) -> None: ...


class Progress(Protocol):
    async def increment_progress(self, account_id: int, objective_key: str, amount: int) -> None: ...

    async def set_progress(self, account_id: int, objective_key: str, value: int) -> None: ...


class Notifications(Protocol):
    async def notify_robbed(
        self, account_id: int, attacker_name: str, amount_lost: int, item_lost_name: Optional[str] = None
    ) -> None: ...

    async def notify_defended(self, account_id: int, attacker_name: str) -> None: ...


class Feed(Protocol):
    async def post_item_theft(self, attacker_name: str, defender_name: str, item_name: str, item_tier: str) -> None: ...


class Factions(Protocol):
    async def add_territory_score(self, account_id: int, activity: str) -> None: ...


# Called with (effect, account_id, robbery_id, payload, error) for each failure
FailureSink = Callable[[str, Optional[int], Optional[str], Dict[str, Any], str], None]


@dataclass
class PropagationReport:
    attempted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


async def run_isolated(
    effect: str,
    call: Callable[[], Awaitable[Any]],
    account_id: Optional[int] = None,
    robbery_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
    failure_sink: Optional[FailureSink] = None,
) -> bool:
    """
    Run one side effect; any exception is logged and swallowed.

    Returns True when the call completed. Failures are never retried here
    and never reach the caller; they go to the log, the failure counter and
    the optional dead-letter sink.
    """
    try:
        await call()
        return True
    except Exception as e:
        side_effect_failure_counter.labels(effect=effect).inc()
        logger.error(
            f"Side effect failed: {effect}: {e}",
            extra={
                "effect": effect,
                "account_id": account_id,
                "robbery_id": robbery_id,
                "step": "propagate",
                "error_type": type(e).__name__,
            },
        )
        if failure_sink is not None:
            try:
                failure_sink(effect, account_id, robbery_id, payload or {}, f"{type(e).__name__}: {e}")
            except Exception as sink_error:
                logger.error(
                    f"Could not record side-effect failure: {sink_error}",
                    extra={"effect": effect, "robbery_id": robbery_id},
                )
        return False


class SideEffectPropagator:
    """Fans a committed robbery out to leaderboard, progress, notification, feed and faction services"""

    def __init__(
        self,
        leaderboard: Leaderboard,
        progress: Progress,
        notifications: Notifications,
        feed: Feed,
        factions: Factions,
        failure_sink: Optional[FailureSink] = None,
    ):
        self.leaderboard = leaderboard
        self.progress = progress
        self.notifications = notifications
        self.feed = feed
        self.factions = factions
        self.failure_sink = failure_sink

    async def propagate(
        self,
        robbery_id: str,
        attacker: AccountSnapshot,
        defender: AccountSnapshot,
        outcome: RobberyOutcome,
        receipt: CommitReceipt,
    ) -> PropagationReport:
        report = PropagationReport()
        wealth = outcome.net_stolen
        xp = outcome.experience_gained

        async def fire(effect: str, account_id: int, call: Callable[[], Awaitable[Any]], **payload: Any) -> None:
            report.attempted.append(effect)
            ok = await run_isolated(
                effect,
                call,
                account_id=account_id,
                robbery_id=robbery_id,
                payload=payload,
                failure_sink=self.failure_sink,
            )
            if not ok:
                report.failed.append(effect)

        await fire(
            "leaderboard",
            attacker.id,
            lambda: self.leaderboard.record_rob_attempt(attacker.id, outcome.success, wealth, xp),
            success=outcome.success,
            wealth_delta=wealth,
            experience_delta=xp,
        )

        if outcome.success and wealth > 0:
            await fire(
                "leaderboard:record",
                attacker.id,
                lambda: self.leaderboard.check_record(attacker.id, RecordType.BIGGEST_SINGLE_ROB, wealth),
                record_type=RecordType.BIGGEST_SINGLE_ROB,
                value=wealth,
            )

        await fire(
            "mission:rob_attempts",
            attacker.id,
            lambda: self.progress.increment_progress(attacker.id, Objective.ROB_ATTEMPTS, 1),
            objective=Objective.ROB_ATTEMPTS,
            amount=1,
        )

        if outcome.success:
            await fire(
                "mission:rob_successes",
                attacker.id,
                lambda: self.progress.increment_progress(attacker.id, Objective.ROB_SUCCESSES, 1),
                objective=Objective.ROB_SUCCESSES,
                amount=1,
            )
            await fire(
                "mission:wealth_earned",
                attacker.id,
                lambda: self.progress.increment_progress(attacker.id, Objective.WEALTH_EARNED, wealth),
                objective=Objective.WEALTH_EARNED,
                amount=wealth,
            )
            await fire(
                "achievement:rob_wins",
                attacker.id,
                lambda: self.progress.increment_progress(attacker.id, Objective.ROB_WINS, 1),
                objective=Objective.ROB_WINS,
                amount=1,
            )
            await fire(
                "achievement:total_wealth_earned",
                attacker.id,
                lambda: self.progress.increment_progress(attacker.id, Objective.TOTAL_WEALTH_EARNED, wealth),
                objective=Objective.TOTAL_WEALTH_EARNED,
                amount=wealth,
            )
        else:
            await fire(
                "achievement:rob_defenses",
                defender.id,
                lambda: self.progress.increment_progress(defender.id, Objective.ROB_DEFENSES, 1),
                objective=Objective.ROB_DEFENSES,
                amount=1,
            )

        if receipt.level_changed:
            await fire(
                "achievement:level_reached",
                attacker.id,
                lambda: self.progress.set_progress(attacker.id, Objective.LEVEL_REACHED, receipt.attacker_level),
                objective=Objective.LEVEL_REACHED,
                value=receipt.attacker_level,
            )

        item = outcome.item_stolen
        if outcome.success:
            await fire(
                "notification:robbed",
                defender.id,
                lambda: self.notifications.notify_robbed(
                    defender.id, attacker.name, wealth, item.name if item else None
                ),
                attacker_name=attacker.name,
                amount_lost=wealth,
            )
            if item is not None:
                await fire(
                    "feed:item_theft",
                    attacker.id,
                    lambda: self.feed.post_item_theft(attacker.name, defender.name, item.name, item.tier),
                    item_id=item.id,
                    item_name=item.name,
                )
        else:
            await fire(
                "notification:defended",
                defender.id,
                lambda: self.notifications.notify_defended(defender.id, attacker.name),
                attacker_name=attacker.name,
            )

        await fire(
            "faction:territory_score",
            attacker.id,
            lambda: self.factions.add_territory_score(attacker.id, TerritoryActivity.ROB),
            activity=TerritoryActivity.ROB,
        )

        return report
