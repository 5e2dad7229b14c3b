"""
Shared fixtures: every test case gets its own in-memory database and a fully
wired engine, so tests never touch the configured database.
"""
import random

from database import init_db, make_engine, make_sessionmaker
from services.engine import Engine, build_engine

MEMORY_URL = "sqlite+aiosqlite://"


async def make_test_engine(url: str = MEMORY_URL, seed: int = 7):
    """Return (db_engine, Engine). Dispose db_engine in tearDown."""
    db = make_engine(url)
    await init_db(db)
    return db, build_engine(make_sessionmaker(db), rng=random.Random(seed))


async def add_staff(engine: Engine, name: str, department: str = "Civil Registration", **kwargs):
    return await engine.assignment.add_staff(name=name, department=department, **kwargs)
