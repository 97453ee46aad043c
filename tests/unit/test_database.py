"""
Unit tests for the session helpers.
"""
import pytest
from sqlalchemy import select

from scout.core.database import get_async_db
from scout.ingestion.database import StartupModel


async def names(session_factory):
    async with session_factory() as session:
        return list((await session.execute(select(StartupModel.name))).scalars())


async def test_get_async_db_commits_on_success(session_factory):
    async with get_async_db(session_factory) as session:
        session.add(StartupModel(name="Acme"))

    assert await names(session_factory) == ["Acme"]


async def test_get_async_db_rolls_back_on_error(session_factory):
    with pytest.raises(RuntimeError):
        async with get_async_db(session_factory) as session:
            session.add(StartupModel(name="Acme"))
            await session.flush()
            raise RuntimeError("boom")

    assert await names(session_factory) == []
