"""Insurance policy store: status, purchases and daily premiums"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kingpin_gateway.config import settings
from kingpin_gateway.domain.constants import INSURANCE_CONFIG, EventType, InsuranceConfig, InsuranceTier
from kingpin_gateway.domain.exceptions import AccountNotFoundError, InsufficientWealthError
from kingpin_gateway.domain.formulas import format_wealth
from kingpin_gateway.domain.insurance import build_status, parse_tier
from kingpin_gateway.domain.models import InsurancePurchaseResult, InsuranceStatus, PremiumChargeResult
from kingpin_gateway.infrastructure.database.models import InsurancePolicy
from kingpin_gateway.infrastructure.database.repositories import AccountRepository, GameEventRepository
from kingpin_gateway.infrastructure.observability.metrics import insurance_premium_counter
from kingpin_gateway.utils.date_utils import as_utc, utc_now

logger = logging.getLogger(__name__)


class InsuranceStore:
    """
    Robbery insurance backed by the insurance_policy table.

    Status is always read from the database at call time: a policy can lapse
    between a robbery precheck and the robbery itself.
    """

    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utc_now,
        config: InsuranceConfig = INSURANCE_CONFIG,
        billing_period: Optional[timedelta] = None,
        grace_period: Optional[timedelta] = None,
    ):
        self.db = db
        self.clock = clock
        self.config = config
        self.billing_period = billing_period or timedelta(hours=settings.insurance_billing_period_hours)
        self.grace_period = grace_period if grace_period is not None else timedelta(
            hours=settings.insurance_grace_period_hours
        )
        self.accounts = AccountRepository(db)
        self.events = GameEventRepository(db)

    def _policy(self, account_id: int) -> Optional[InsurancePolicy]:
        return self.db.scalars(select(InsurancePolicy).where(InsurancePolicy.account_id == account_id)).first()

    def _require_account(self, account_id: int) -> None:
        if self.accounts.get(account_id) is None:
            raise AccountNotFoundError(f"Account {account_id} not found")

    def get_status(self, account_id: int) -> InsuranceStatus:
        policy = self._policy(account_id)
        tier = parse_tier(policy.tier) if policy else InsuranceTier.NONE
        paid_at = as_utc(policy.last_premium_paid_at) if policy else None
        return build_status(tier, paid_at, self.clock(), self.billing_period, self.grace_period, self.config)

    def available_tiers(self) -> List[Dict[str, object]]:
        return [
            {
                "tier": tier.value,
                "protection": tier_config.protection,
                "daily_premium": tier_config.daily_premium,
                "monthly_premium": tier_config.daily_premium * 30,
            }
            for tier, tier_config in self.config.tiers.items()
        ]

    def _set_policy(self, account_id: int, tier: InsuranceTier, paid_at: Optional[datetime]) -> None:
        policy = self._policy(account_id)
        if policy is None:
            policy = InsurancePolicy(account_id=account_id)
            self.db.add(policy)
        policy.tier = tier.value
        policy.last_premium_paid_at = paid_at
        self.db.flush()

    def purchase(self, account_id: int, tier: InsuranceTier) -> InsurancePurchaseResult:
        """
        Switch to `tier`.

        A paid tier deducts its first premium immediately and starts the
        current window; insufficient wealth leaves the policy untouched.
        Downgrading to `none` is free. Commits on success.
        """
        self._require_account(account_id)
        tier_config = self.config.tiers[tier]

        if tier == InsuranceTier.NONE or tier_config.daily_premium <= 0:
            self._set_policy(account_id, InsuranceTier.NONE, None)
            self.db.commit()
            return InsurancePurchaseResult(success=True, tier=InsuranceTier.NONE, cost=0)

        try:
            self.accounts.debit(account_id, tier_config.daily_premium)
        except InsufficientWealthError:
            self.db.rollback()
            current = self.get_status(account_id).tier
            return InsurancePurchaseResult(
                success=False,
                tier=current,
                cost=0,
                error=f"Need {format_wealth(tier_config.daily_premium)} to purchase {tier.value} insurance",
            )

        try:
            self._set_policy(account_id, tier, self.clock())
            self.events.append(
                account_id=account_id,
                event_type=EventType.INSURANCE_PURCHASE,
                description=f"Purchased {tier.value} insurance",
                wealth_delta=-tier_config.daily_premium,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        insurance_premium_counter.labels(outcome="purchase").inc()
        logger.info(
            "Insurance purchased",
            extra={"account_id": account_id, "tier": tier.value, "cost": tier_config.daily_premium},
        )
        return InsurancePurchaseResult(success=True, tier=tier, cost=tier_config.daily_premium)

    def charge_daily_premium(self, account_id: int) -> PremiumChargeResult:
        """Charge one premium; an account that cannot pay is silently downgraded to `none`"""
        policy = self._policy(account_id)
        current = parse_tier(policy.tier) if policy else InsuranceTier.NONE

        if current == InsuranceTier.NONE:
            return PremiumChargeResult(
                account_id=account_id, status="skipped", previous_tier=current, new_tier=current
            )

        premium = self.config.tiers[current].daily_premium
        try:
            self.accounts.debit(account_id, premium)
        except InsufficientWealthError:
            try:
                self._set_policy(account_id, InsuranceTier.NONE, None)
                self.events.append(
                    account_id=account_id,
                    event_type=EventType.INSURANCE_LAPSE,
                    description=f"Insurance lapsed (couldn't afford {current.value} premium)",
                    success=False,
                )
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            insurance_premium_counter.labels(outcome="lapsed").inc()
            logger.info("Insurance lapsed", extra={"account_id": account_id, "tier": current.value})
            return PremiumChargeResult(
                account_id=account_id, status="lapsed", previous_tier=current, new_tier=InsuranceTier.NONE
            )

        try:
            self._set_policy(account_id, current, self.clock())
            self.events.append(
                account_id=account_id,
                event_type=EventType.INSURANCE_PREMIUM,
                description=f"{current.value} insurance daily premium",
                wealth_delta=-premium,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        insurance_premium_counter.labels(outcome="paid").inc()
        return PremiumChargeResult(
            account_id=account_id,
            status="paid",
            previous_tier=current,
            new_tier=current,
            amount_deducted=premium,
        )

    def process_all_premiums(self) -> Dict[str, int]:
        """
        Daily job: charge every account holding a paid tier.

        A database error on one account is rolled back and logged; the run
        moves on to the next account.
        """
        account_ids = self.db.scalars(
            select(InsurancePolicy.account_id).where(InsurancePolicy.tier != InsuranceTier.NONE.value)
        ).all()

        processed = 0
        total_deducted = 0
        lapses = 0
        failed = 0
        for account_id in account_ids:
            try:
                result = self.charge_daily_premium(account_id)
            except SQLAlchemyError as e:
                self.db.rollback()
                failed += 1
                insurance_premium_counter.labels(outcome="error").inc()
                logger.error(
                    f"Premium charge failed: {e}",
                    extra={"account_id": account_id, "error_type": type(e).__name__},
                )
                continue
            processed += 1
            total_deducted += result.amount_deducted
            if result.downgraded:
                lapses += 1

        logger.info(
            "Insurance premiums processed",
            extra={"processed": processed, "total_deducted": total_deducted, "lapses": lapses, "failed": failed},
        )
        return {"processed": processed, "total_deducted": total_deducted, "lapses": lapses, "failed": failed}
