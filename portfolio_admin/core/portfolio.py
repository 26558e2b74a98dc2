"""
Loads everything the public page shows in one go and answers the questions the
page asks of it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from portfolio_admin.exceptions import PortfolioError
from portfolio_admin.models.records import (
    ContactInfo,
    Project,
    RecordKind,
    Settings,
    Skill,
    SocialLink,
    group_skills_by_category,
)
from portfolio_admin.storage.cache import QueryState

from .repository import PortfolioRepository

log = logging.getLogger(__name__)

ALL_CATEGORIES = "all"

COLLECTIONS = (
    RecordKind.PROJECTS,
    RecordKind.SKILLS,
    RecordKind.SOCIAL_LINKS,
    RecordKind.CONTACT_INFO,
)


@dataclass
class PortfolioSnapshot:
    """The four collections plus settings, as loaded at one point in time."""

    states: Dict[RecordKind, QueryState]
    settings: Settings = field(default_factory=Settings.default)
    settings_error: Optional[PortfolioError] = None

    def _data(self, kind: RecordKind) -> list:
        state = self.states.get(kind)
        return list(state.data or []) if state else []

    @property
    def projects(self) -> List[Project]:
        return self._data(RecordKind.PROJECTS)

    @property
    def skills(self) -> List[Skill]:
        return self._data(RecordKind.SKILLS)

    @property
    def social_links(self) -> List[SocialLink]:
        return self._data(RecordKind.SOCIAL_LINKS)

    @property
    def contact_info(self) -> List[ContactInfo]:
        return self._data(RecordKind.CONTACT_INFO)

    @property
    def errors(self) -> Dict[str, PortfolioError]:
        found = {
            kind.value: state.error
            for kind, state in self.states.items()
            if state.error is not None
        }
        if self.settings_error is not None:
            found[RecordKind.SETTINGS.value] = self.settings_error
        return found

    def counts(self) -> Dict[RecordKind, int]:
        """Number of records per collection, for the admin overview."""
        return {kind: len(self._data(kind)) for kind in COLLECTIONS}

    def featured_projects(self) -> List[Project]:
        return [p for p in self.projects if p.featured]

    def skill_categories(self) -> List[str]:
        """Lower-cased categories in first-seen order, after the 'all' filter."""
        return [ALL_CATEGORIES, *group_skills_by_category(self.skills)]

    def skills_in_category(self, category: str) -> List[Skill]:
        wanted = category.strip().lower()
        if wanted == ALL_CATEGORIES:
            return self.skills
        return [s for s in self.skills if s.category.strip().lower() == wanted]

    def primary_email(self) -> str:
        """The value of the first contact entry whose title mentions email."""
        for info in self.contact_info:
            if "email" in (info.title or "").lower():
                return info.value
        return ""


async def load_snapshot(repo: PortfolioRepository) -> PortfolioSnapshot:
    """Lists all collections and reads settings concurrently."""
    log.debug(f"Loading {len(COLLECTIONS)} collections and settings...")

    async def load_settings() -> tuple[Settings, Optional[PortfolioError]]:
        try:
            return await repo.get_settings(), None
        except PortfolioError as e:
            log.warning(f"Failed to load settings: {e}")
            return Settings.default(), e

    *states, (settings, settings_error) = await asyncio.gather(
        *(repo.list(kind) for kind in COLLECTIONS), load_settings()
    )
    return PortfolioSnapshot(
        states=dict(zip(COLLECTIONS, states)),
        settings=settings,
        settings_error=settings_error,
    )
