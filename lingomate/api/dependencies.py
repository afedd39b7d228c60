"""Shared FastAPI dependencies."""

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from lingomate.capabilities import CapabilityChecker, PlanCapabilities
from lingomate.config import settings
from lingomate.database import get_session
from lingomate.srs.store import ReviewStore


def get_store(db: AsyncSession = Depends(get_session)) -> ReviewStore:
    return ReviewStore(db)


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Identity is established upstream; fall back to the anonymous user."""
    return x_user_id or settings.default_user_id


def get_capability_checker(store: ReviewStore = Depends(get_store)) -> CapabilityChecker:
    return PlanCapabilities(store)
