"""Robbery orchestration: precheck, resolve, commit, propagate"""

import logging
import random
import time
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from kingpin_gateway.config import settings
from kingpin_gateway.domain.constants import ROB_CONFIG, BuffType, CooldownAction, EventType, RobConfig
from kingpin_gateway.domain.exceptions import PrecheckRejection
from kingpin_gateway.domain.formulas import calculate_rob_success_rate
from kingpin_gateway.domain.insurance import effective_protection
from kingpin_gateway.domain.messages import build_result_message
from kingpin_gateway.domain.models import (
    AccountSnapshot,
    RateInputs,
    RejectionReason,
    RobberyResult,
    RobberyStage,
    RobPrecheck,
)
from kingpin_gateway.domain.resolver import Dice, resolve_robbery
from kingpin_gateway.infrastructure.database.models import GameEvent
from kingpin_gateway.infrastructure.database.repositories import (
    AccountRepository,
    BuffRepository,
    GameEventRepository,
)
from kingpin_gateway.infrastructure.observability.logging import log_robbery
from kingpin_gateway.infrastructure.observability.metrics import precheck_rejection_counter, record_robbery
from kingpin_gateway.services.commit import commit_robbery, transfer_stolen_item
from kingpin_gateway.services.cooldowns import CooldownStore
from kingpin_gateway.services.equipment import EquipmentRegistry
from kingpin_gateway.services.insurance import InsuranceStore
from kingpin_gateway.services.side_effects import SideEffectPropagator
from kingpin_gateway.utils.date_utils import format_duration, utc_now

logger = logging.getLogger(__name__)


class RobberyService:
    """
    Entry point for robbing another player.

    Holds only a session and its collaborators; nothing about wealth or
    durability is cached between calls.
    """

    def __init__(
        self,
        db: Session,
        propagator: SideEffectPropagator,
        rng: Optional[Dice] = None,
        clock: Callable[[], datetime] = utc_now,
        config: RobConfig = ROB_CONFIG,
        revalidate_in_commit: Optional[bool] = None,
    ):
        self.db = db
        self.propagator = propagator
        self.rng = rng or random.Random()
        self.clock = clock
        self.config = config
        self.revalidate_in_commit = (
            settings.revalidate_in_commit if revalidate_in_commit is None else revalidate_in_commit
        )
        self.accounts = AccountRepository(db)
        self.buffs = BuffRepository(db)
        self.events = GameEventRepository(db)
        self.cooldowns = CooldownStore(db, clock)
        self.insurance = InsuranceStore(db, clock)
        self.equipment = EquipmentRegistry(db, rng=self.rng, clock=clock)

    def _stage(self, stage: RobberyStage, robbery_id: str, **context) -> None:
        logger.debug("Robbery stage", extra={"step": stage.value, "robbery_id": robbery_id, **context})

    def _reject(self, reason: RejectionReason, message: str, target: Optional[AccountSnapshot] = None, **extra) -> RobPrecheck:
        precheck_rejection_counter.labels(reason=reason.value).inc()
        return RobPrecheck(
            allowed=False,
            reason=message,
            reason_code=reason,
            target_id=target.id if target else None,
            target_username=target.username if target else None,
            **extra,
        )

    def success_rate(self, attacker: AccountSnapshot, defender: AccountSnapshot) -> float:
        now = self.clock()
        attacker_gear = self.equipment.get_equipped(attacker.id)
        defender_gear = self.equipment.get_equipped(defender.id)
        attacker_faction, _ = self.accounts.faction_bonuses(attacker.id)
        _, defender_faction = self.accounts.faction_bonuses(defender.id)

        return calculate_rob_success_rate(
            RateInputs(
                attacker_level=attacker.level,
                defender_level=defender.level,
                attacker_weapon_bonus=attacker_gear.weapon_bonus,
                defender_armor_bonus=defender_gear.armor_bonus,
                attacker_faction_bonus=attacker_faction,
                defender_faction_bonus=defender_faction,
                attack_multiplier=self.buffs.strongest_multiplier(attacker.id, BuffType.ROB_ATTACK, now),
                defense_multiplier=self.buffs.strongest_multiplier(defender.id, BuffType.ROB_DEFENSE, now),
            ),
            self.config,
        )

    def can_rob(self, attacker_id: int, target_identifier: str) -> RobPrecheck:
        """Read-only eligibility check with a success-rate preview"""
        jail_remaining = self.cooldowns.remaining(attacker_id, CooldownAction.JAIL)
        if jail_remaining.total_seconds() > 0:
            return self._reject(
                RejectionReason.JAILED,
                f"You can't rob while in jail. Time remaining: {format_duration(jail_remaining)}",
            )

        target = self.accounts.find_by_identifier(target_identifier)
        if target is None:
            return self._reject(RejectionReason.TARGET_NOT_FOUND, f'User "{target_identifier}" not found.')

        if target.id == attacker_id:
            return self._reject(RejectionReason.SELF_TARGET, "You can't rob yourself!")

        if target.wealth <= 0:
            return self._reject(RejectionReason.NO_WEALTH, f"{target.name} has no wealth to steal!", target)

        if self.buffs.has_buff(target.id, BuffType.IMMUNITY, self.clock()):
            return self._reject(
                RejectionReason.IMMUNE, f"{target.name} is the current Juicernaut and cannot be robbed!", target
            )

        cooldown_expires_at = self.cooldowns.expires_at(attacker_id, CooldownAction.ROB_TARGET, target.id)
        if cooldown_expires_at is not None:
            remaining = format_duration(cooldown_expires_at - self.clock())
            return self._reject(
                RejectionReason.ON_COOLDOWN,
                f"You already robbed {target.name} recently. Try again in {remaining}.",
                target,
                cooldown_expires_at=cooldown_expires_at,
            )

        attacker = self.accounts.get_snapshot(attacker_id)
        return RobPrecheck(
            allowed=True,
            target_id=target.id,
            target_username=target.username,
            target_wealth=target.wealth,
            preview_success_rate=self.success_rate(attacker, target),
        )

    async def attempt_robbery(
        self, attacker_id: int, target_identifier: str, request_id: str = "unknown"
    ) -> RobberyResult:
        """
        Execute a robbery attempt.

        Flow:
        1. Precheck (jail, target, self, wealth, immunity, cooldown)
        2. Compute success rate from levels, gear, factions and consumables
        3. Resolve outcome, reading insurance at this moment
        4. Commit all economic effects in one transaction
        5. Transfer a stolen item in its own transaction
        6. Propagate to secondary systems, failures isolated

        Raises:
            PrecheckRejection: not eligible; nothing written
            TransactionFailure: commit rolled back; safe to retry
        """
        start_time = time.time()
        robbery_id = uuid.uuid4().hex

        precheck = self.can_rob(attacker_id, target_identifier)
        if not precheck.allowed:
            self._stage(RobberyStage.REJECTED, robbery_id, reason=precheck.reason_code.value)
            raise PrecheckRejection(precheck.reason_code, precheck.reason)
        self._stage(RobberyStage.ELIGIBLE, robbery_id, attacker_id=attacker_id, defender_id=precheck.target_id)

        attacker = self.accounts.get_snapshot(attacker_id)
        defender = self.accounts.get_snapshot(precheck.target_id)

        rate = self.success_rate(attacker, defender)
        self._stage(RobberyStage.RATE_COMPUTED, robbery_id, success_rate=rate)

        defender_gear = self.equipment.get_equipped(defender.id)
        protection, source = effective_protection(
            self.insurance.get_status(defender.id), defender_gear.housing_protection
        )
        outcome = resolve_robbery(
            attacker_id=attacker.id,
            defender_id=defender.id,
            success_rate=rate,
            defender_wealth=defender.wealth,
            protection=protection,
            rng=self.rng,
            defender_equipped=defender_gear,
            protection_source=source,
            config=self.config,
        )
        self._stage(RobberyStage.RESOLVED, robbery_id, success=outcome.success, net_stolen=outcome.net_stolen)

        receipt = commit_robbery(
            self.db,
            attacker,
            defender,
            outcome,
            self.equipment,
            clock=self.clock,
            config=self.config,
            revalidate=self.revalidate_in_commit,
        )
        self._stage(RobberyStage.COMMITTED, robbery_id)
        record_robbery(outcome.success, outcome.net_stolen, outcome.insurance_payout, outcome.insurance_source)

        if outcome.item_stolen is not None:
            try:
                outcome.item_stolen = transfer_stolen_item(
                    self.db, outcome.item_stolen, attacker, defender, clock=self.clock
                )
            except Exception as e:
                # The robbery itself is committed; only the item stays put
                logger.error(
                    f"Stolen item transfer failed: {e}",
                    extra={"robbery_id": robbery_id, "item_id": outcome.item_stolen.id, "step": "item_transfer"},
                )
                outcome.item_stolen = None

        report = await self.propagator.propagate(robbery_id, attacker, defender, outcome, receipt)
        self._stage(RobberyStage.PROPAGATED, robbery_id, failed=report.failed)

        duration_ms = (time.time() - start_time) * 1000
        log_robbery(request_id, robbery_id, attacker.id, defender.id, outcome.success, outcome.net_stolen, duration_ms)

        return RobberyResult(
            robbery_id=robbery_id,
            success=True,
            outcome="success" if outcome.success else "failure",
            wealth_stolen=outcome.net_stolen,
            insurance_saved=outcome.insurance_payout,
            item_stolen=outcome.item_stolen,
            experience_gained=outcome.experience_gained,
            attacker_weapon_damage=receipt.attacker_weapon_damage,
            defender_armor_damage=receipt.defender_armor_damage,
            cooldown_expires_at=receipt.cooldown_expires_at,
            message=build_result_message(
                outcome, defender.name, receipt.attacker_weapon_damage, receipt.defender_armor_damage
            ),
            side_effect_failures=report.failed,
        )

    def get_history(self, account_id: int, limit: int = 10) -> List[GameEvent]:
        """Recent robberies for an account, as attacker or victim"""
        return self.events.history(account_id, (EventType.ROB, EventType.ROB_VICTIM), limit=limit)
