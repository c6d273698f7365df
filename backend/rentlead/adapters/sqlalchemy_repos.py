# rentlead/adapters/sqlalchemy_repos.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from .repos.leads import LeadRepository
from .repos.market_data import MarketDataRepository
from .repos.owners import OwnerRepository
from .repos.properties import PropertyRepository


class SqlAlchemyRepos:
    """One repository per entity type, all bound to the same session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.leads = LeadRepository(session)
        self.properties = PropertyRepository(session)
        self.owners = OwnerRepository(session)
        self.market = MarketDataRepository(session)
