# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- An in-memory SQLite store with the full schema
- Reviewer and learner accounts
- A small taxonomy definition and its seeded counterpart
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from sonoreview.infrastructure.database.connection import create_schema, create_sessionmaker
from sonoreview.infrastructure.database.models import User
from sonoreview.infrastructure.database.seeds.taxonomy import seed_taxonomy
from sonoreview.models.taxonomy import TaxonomyDefinition

SQLITE_MEMORY_URL = "sqlite+aiosqlite://"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires PostgreSQL)"
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite engine with every table created.

    StaticPool keeps the single in-memory connection alive for the test.
    """
    engine = create_async_engine(
        SQLITE_MEMORY_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a session on the in-memory store."""
    async with create_sessionmaker(db_engine)() as session:
        yield session


@pytest_asyncio.fixture
async def reviewer(db_session: AsyncSession) -> User:
    """Create a reviewer account."""
    user = User(
        email="ana.reviewer@example.com",
        first_name="Ana",
        last_name="Silva",
        role="reviewer",
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def learner(db_session: AsyncSession) -> User:
    """Create a learner account."""
    user = User(
        email="leo.learner@example.com",
        first_name="Leo",
        last_name="Park",
        role="learner",
    )
    db_session.add(user)
    await db_session.commit()
    return user


# =============================================================================
# Taxonomy Fixtures
# =============================================================================


@pytest.fixture
def taxonomy_data() -> dict[str, Any]:
    """Provide a small taxonomy definition as it would be parsed from YAML.

    The cardiac protocol has two windows sharing the "Valvulopathy"
    possible diagnosis, whose branch reaches the third-order level.
    """
    return {
        "image_qualities": ["Good", "Poor"],
        "final_diagnoses": ["True positive", "False negative"],
        "protocols": [
            {
                "key": "cardiac",
                "name": "Cardiac",
                "rubric": [
                    {
                        "key": "int",
                        "name": "Overall Quality",
                        "order": 2,
                        "items": [
                            {"key": "LV", "label": "Left ventricle", "scale": "binary", "max": 1},
                        ],
                    },
                    {
                        "key": "adq",
                        "name": "Image Generation",
                        "order": 1,
                        "items": [
                            {"key": "PSL", "label": "Parasternal long axis", "max": 10},
                            {"key": "A4C", "label": "Apical four chamber", "max": 10},
                            {"key": "SC", "label": "Subcostal", "max": 10},
                        ],
                    },
                ],
                "windows": ["PSLAX", "A4C"],
                "possible_diagnoses": [
                    "LVEF",
                    {
                        "key": "Valvulopathy",
                        "subdiagnoses": [
                            {
                                "key": "Mitral",
                                "sub_subdiagnoses": [
                                    {
                                        "key": "stenosis",
                                        "name": "Stenosis",
                                        "third_order": ["mild", "moderate", "severe"],
                                    }
                                ],
                            },
                            "Aortic",
                        ],
                    },
                ],
            },
            {
                "key": "lung",
                "name": "Lung",
                "rubric": [
                    {
                        "key": "adq",
                        "name": "Image Generation",
                        "items": [{"key": "Z1", "label": "Zone 1", "max": 5}],
                    },
                ],
                "windows": ["R1"],
                "possible_diagnoses": ["PTX"],
            },
        ],
    }


@pytest.fixture
def taxonomy_definition(taxonomy_data: dict[str, Any]) -> TaxonomyDefinition:
    """Provide the validated small taxonomy definition."""
    return TaxonomyDefinition.model_validate(taxonomy_data)


@pytest_asyncio.fixture
async def seeded_session(
    db_session: AsyncSession,
    taxonomy_definition: TaxonomyDefinition,
) -> AsyncSession:
    """Provide a session on a store seeded with the small taxonomy."""
    await seed_taxonomy(db_session, taxonomy_definition)
    return db_session
