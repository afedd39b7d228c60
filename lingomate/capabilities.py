"""Plan-based capability checks for learner actions."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import Protocol

from lingomate.config import settings, utcnow
from lingomate.srs.errors import CapabilityDenied
from lingomate.srs.store import ReviewStore

logger = logging.getLogger(__name__)


class Action(StrEnum):
    SUBMIT_REVIEW = "submit_review"


@dataclass(frozen=True)
class CapabilityDecision:
    allowed: bool
    reason: str | None = None
    remaining_today: int | None = None  # None: unlimited


class CapabilityChecker(Protocol):
    async def can_perform_action(self, user_id: str, action: Action) -> CapabilityDecision: ...


class PlanCapabilities:
    """Premium users are unlimited; free users get a daily review allowance."""

    def __init__(
        self,
        store: ReviewStore,
        premium_user_ids: list[str] | None = None,
        daily_review_limit: int | None = None,
    ) -> None:
        self.store = store
        self.premium_user_ids = set(
            settings.premium_user_ids if premium_user_ids is None else premium_user_ids
        )
        self.daily_review_limit = (
            settings.free_daily_review_limit if daily_review_limit is None else daily_review_limit
        )

    async def can_perform_action(self, user_id: str, action: Action) -> CapabilityDecision:
        if user_id in self.premium_user_ids:
            return CapabilityDecision(allowed=True)

        if action == Action.SUBMIT_REVIEW:
            since = utcnow() - timedelta(days=1)
            used = await self.store.count_reviews_since(user_id, since)
            remaining = max(0, self.daily_review_limit - used)
            if remaining == 0:
                return CapabilityDecision(
                    allowed=False,
                    reason=(
                        f"You've reached your daily limit of {self.daily_review_limit} reviews. "
                        "Upgrade to Premium for unlimited reviews."
                    ),
                    remaining_today=0,
                )
            return CapabilityDecision(allowed=True, remaining_today=remaining)

        return CapabilityDecision(allowed=True)


async def require(checker: CapabilityChecker, user_id: str, action: Action) -> CapabilityDecision:
    """Raise CapabilityDenied unless the user may perform the action."""
    decision = await checker.can_perform_action(user_id, action)
    if not decision.allowed:
        logger.warning("Denied %s for user %s: %s", action, user_id, decision.reason)
        raise CapabilityDenied(decision.reason or f"Action {action} is not allowed")
    return decision
