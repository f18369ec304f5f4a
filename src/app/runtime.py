"""Bootstrap logic for wiring the study components together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.app.settings import AppSettings
from src.db import get_session_factory, run_migrations_if_needed
from src.db.kv_store import SQLKeyValueStore
from src.db.progress import ProgressRepository
from src.db.srs_records import SchedulingRepository
from src.services import ContentProvider, build_openai_client
from src.study.service import StudyService


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudyContext:
    """Components a UI host needs to run flashcard sessions."""

    store: SQLKeyValueStore
    repository: SchedulingRepository
    progress: ProgressRepository
    study_service: StudyService
    content_provider: ContentProvider


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_study_context(
    settings: AppSettings,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> StudyContext:
    """Configure logging and storage, then build the study components."""
    _configure_logging(settings.log_level)

    if session_factory is None:
        try:
            run_migrations_if_needed()
        except Exception:
            LOGGER.exception("Database migrations failed. Aborting startup.")
            raise
        session_factory = get_session_factory()

    store = SQLKeyValueStore(session_factory, capacity_bytes=settings.storage_capacity_bytes)
    repository = SchedulingRepository(store, storage_key=settings.srs_storage_key)
    content_provider = ContentProvider(
        build_openai_client(settings.openai_api_key),
        settings.content_model,
        store,
    )

    LOGGER.info("%s is ready in %s mode.", settings.app_name, settings.app_env)
    return StudyContext(
        store=store,
        repository=repository,
        progress=ProgressRepository(store),
        study_service=StudyService(repository),
        content_provider=content_provider,
    )
