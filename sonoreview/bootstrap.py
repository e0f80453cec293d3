# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process bootstrap for services embedding SonoReview.

Call ``bootstrap()`` once at process start and ``shutdown()`` on exit.
Nothing is seeded or connected at import time.

Example:
    from sonoreview.bootstrap import bootstrap, shutdown

    @asynccontextmanager
    async def lifespan(app):
        await bootstrap()
        yield
        await shutdown()
"""

from sonoreview.core.config import Settings, get_settings
from sonoreview.infrastructure.database.connection import (
    close_database,
    create_schema,
    get_engine,
    get_session,
    init_database,
)
from sonoreview.infrastructure.database.migrations.runner import run_migrations
from sonoreview.infrastructure.database.seeds.taxonomy import (
    SeedReport,
    load_taxonomy_definition,
    seed_taxonomy,
)
from sonoreview.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def bootstrap(settings: Settings | None = None) -> SeedReport | None:
    """Configure logging, migrate and connect to the store, seed the taxonomy.

    Args:
        settings: Settings to use. Defaults to the cached environment settings.

    Returns:
        Seeding report, or None when seeding on startup is disabled.

    Raises:
        DatabaseError: If the store cannot be initialized or seeded.
        TaxonomyDefinitionError: If the taxonomy definition is invalid.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    logger.info(
        "Starting SonoReview",
        environment=settings.environment,
        sqlite=settings.database.is_sqlite,
    )

    if settings.database.migrate_on_startup:
        applied = await run_migrations(settings.database.url)
        logger.info("Migrations applied", revisions=applied)

    await init_database(settings)

    if settings.taxonomy.create_schema:
        await create_schema(get_engine())
        logger.info("Database schema created")

    if not settings.taxonomy.seed_on_startup:
        logger.info("Taxonomy seeding on startup disabled")
        return None

    definition = load_taxonomy_definition(settings.taxonomy.definition_path)

    async with get_session() as session:
        report = await seed_taxonomy(session, definition)

    logger.info(
        "Taxonomy ready",
        path=str(settings.taxonomy.definition_path),
        inserted=report.total_inserted,
        gaps=len(report.gaps),
    )
    return report


async def shutdown() -> None:
    """Release database connections."""
    await close_database()
    logger.info("SonoReview stopped")
