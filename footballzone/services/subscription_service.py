"""Premium entitlement lookups against the mirrored billing subscriptions."""

import math
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from footballzone.core.access import Identity
from footballzone.models.subscription import Subscription, SubscriptionStatus, ENTITLED_STATUSES
from footballzone.schemas.schemas import SubscriptionOut
from footballzone.utils.timeutil import as_utc, utcnow

CURRENT_STATUSES = ENTITLED_STATUSES + (SubscriptionStatus.PAST_DUE,)


class SubscriptionService:

    @staticmethod
    def get_active(db: Session, user_id: int, now: Optional[datetime] = None) -> Optional[Subscription]:
        """Return the user's current entitling subscription, if any."""
        now = now or utcnow()
        candidates = (
            db.query(Subscription)
            .filter(
                Subscription.user_id == user_id,
                Subscription.status.in_(ENTITLED_STATUSES),
            )
            .order_by(Subscription.current_period_end.desc())
            .all()
        )
        for sub in candidates:
            if as_utc(sub.current_period_end) > now:
                return sub
        return None

    @staticmethod
    def get_current(db: Session, user_id: int) -> Optional[Subscription]:
        """Latest subscription still in a billing state (past-due included)."""
        return (
            db.query(Subscription)
            .filter(
                Subscription.user_id == user_id,
                Subscription.status.in_(CURRENT_STATUSES),
            )
            .order_by(Subscription.current_period_end.desc(), Subscription.id.desc())
            .first()
        )

    @staticmethod
    def describe(subscription: Subscription, now: Optional[datetime] = None) -> SubscriptionOut:
        now = now or utcnow()
        period_end = as_utc(subscription.current_period_end)
        remaining = (period_end - now).total_seconds() / 86400
        return SubscriptionOut.model_validate(subscription).model_copy(update={
            "is_active": subscription.status in ENTITLED_STATUSES and period_end > now,
            "days_remaining": max(0, math.ceil(remaining)),
        })

    @staticmethod
    def is_entitled(db: Session, requester: Optional[Identity]) -> bool:
        """Whether ``requester`` may read premium content through a subscription."""
        if requester is None:
            return False
        return SubscriptionService.get_active(db, requester.id) is not None


subscription_service = SubscriptionService()
