# rentlead/entrypoints/api/deps.py
from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ...adapters.sqlalchemy_repos import SqlAlchemyRepos
from ...config import settings
from ...db import get_session
from ...integrations.services.outbox import OutboxNotifier


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if settings.API_KEY:
        if not x_api_key or x_api_key != settings.API_KEY:
            raise HTTPException(status_code=401, detail="Invalid API key")


def actor_id(x_user_id: int = Header(..., alias="X-User-Id")) -> int:
    # Identity is asserted by the upstream auth gateway
    return x_user_id


def get_repos(session: AsyncSession = Depends(get_session)) -> SqlAlchemyRepos:
    return SqlAlchemyRepos(session)


def get_notifier(repos: SqlAlchemyRepos = Depends(get_repos)) -> OutboxNotifier:
    # Same session as the mutation; the notification commits with it
    return OutboxNotifier(repos.session)
