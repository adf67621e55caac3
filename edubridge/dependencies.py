"""
edubridge/dependencies.py
Request-scoped access to process-wide collaborators held on app.state
"""
from typing import Awaitable, Callable, TypeVar

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from edubridge.services.retry import ConnectionHealth, RetryPolicy, run_with_retry
from edubridge.services.settings_service import SettingsCache

T = TypeVar("T")


def get_settings_cache(request: Request) -> SettingsCache:
    return request.app.state.settings_cache


def get_retry_policy(request: Request) -> RetryPolicy:
    return request.app.state.retry_policy


def get_connection_health(request: Request) -> ConnectionHealth:
    return request.app.state.connection_health


async def run_db_operation(
    request: Request,
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    name: str,
    idempotent: bool = True,
) -> T:
    """
    Run a service call under the app's retry policy, rolling back between attempts.

    Pass idempotent=False for writes that a replay would duplicate.
    """
    return await run_with_retry(
        operation,
        policy=get_retry_policy(request),
        health=get_connection_health(request),
        on_retry=db.rollback,
        operation_name=name,
        idempotent=idempotent,
    )
