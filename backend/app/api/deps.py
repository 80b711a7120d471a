"""Shared FastAPI dependencies: storage, AI collaborator, rate limiting."""

from functools import lru_cache
from typing import Annotated

import redis
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.api.auth import get_current_context
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.db.engine import create_session_factory, get_async_engine
from backend.app.db.inmemory import InMemoryRateLimiter, InMemoryStore
from backend.app.db.repositories import RateLimiter, UnitOfWork
from backend.app.db.seed_dev import sample_cache_entries
from backend.app.db.sql_repositories import SqlUnitOfWork
from backend.app.llm.client import ItineraryLLM, get_llm_client
from backend.app.middleware.ratelimit import RateLimitMiddleware
from backend.app.ratelimit import RedisRateLimiter


@lru_cache
def get_memory_store() -> InMemoryStore:
    """Process-wide in-memory store used when storage_backend is "memory"."""
    return InMemoryStore(cache_entries=sample_cache_entries())


@lru_cache
def get_sql_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory on the global async engine."""
    return create_session_factory(get_async_engine())


def get_unit_of_work(settings: Annotated[Settings, Depends(get_settings)]) -> UnitOfWork:
    """Fresh, not yet entered, unit of work for one request."""
    if settings.storage_backend == "sql":
        return SqlUnitOfWork(get_sql_session_factory())
    return get_memory_store().unit_of_work()


async def get_llm() -> ItineraryLLM:
    """AI collaborator for the request."""
    return await get_llm_client()


@lru_cache
def get_rate_limiter() -> RateLimiter:
    """Redis limiter when redis_url is configured, in-memory otherwise."""
    settings = get_settings()
    if settings.redis_url:
        client = redis.from_url(settings.redis_url)  # type: ignore[no-untyped-call]
        return RedisRateLimiter(client, max_requests=settings.ai_calls_per_min)
    return InMemoryRateLimiter(max_requests=settings.ai_calls_per_min)


async def enforce_ai_rate_limit(
    request: Request,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Reject AI-calling requests over the per-user quota with 429."""
    retry_after = RateLimitMiddleware(limiter).charge(request.url.path, ctx)
    if retry_after is not None:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(retry_after.seconds)},
        )


CurrentContext = Annotated[RequestContext, Depends(get_current_context)]
UnitOfWorkDep = Annotated[UnitOfWork, Depends(get_unit_of_work)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
LLMDep = Annotated[ItineraryLLM, Depends(get_llm)]
