"""
Seed the staff pool: one staff member and one officer per service department.
Run: python -m scripts.seed_staff (from the project root).
"""
import asyncio
import logging
import os
import sys

# Add parent so we can import the app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import AsyncSessionLocal, init_db
from logging_config import configure_logging
from services.catalog import SERVICE_CATALOG
from services.engine import build_engine

logger = logging.getLogger(__name__)

STAFF_DATA = [
    {"name": "Ramesh Kumar", "role": "staff", "department": "Civil Registration"},
    {"name": "Sunita Devi", "role": "officer", "department": "Civil Registration"},
    {"name": "Anil Sharma", "role": "staff", "department": "Social Welfare"},
    {"name": "Kavita Patel", "role": "officer", "department": "Social Welfare"},
    {"name": "Mahesh Yadav", "role": "staff", "department": "Agriculture"},
    {"name": "Pooja Singh", "role": "officer", "department": "Agriculture"},
    {"name": "Vikram Joshi", "role": "staff", "department": "Business Services"},
    {"name": "Neha Gupta", "role": "officer", "department": "Business Services"},
    {"name": "Suresh Reddy", "role": "staff", "department": "Education"},
    {"name": "Lakshmi Nair", "role": "officer", "department": "Education"},
    {"name": "Arjun Verma", "role": "staff", "department": "Health Services"},
    {"name": "Meena Kumari", "role": "officer", "department": "Health Services"},
    {"name": "Rajesh Chauhan", "role": "staff", "department": "Utilities"},
    {"name": "Geeta Rani", "role": "officer", "department": "Utilities"},
    {"name": "Dinesh Mishra", "role": "staff", "department": "Revenue Services"},
    {"name": "Anita Thakur", "role": "officer", "department": "Revenue Services"},
    {"name": "Panchayat Secretary", "role": "admin", "department": "Administration"},
]


async def seed():
    configure_logging()
    await init_db()
    engine = build_engine(AsyncSessionLocal)
    departments = {config.category for config in SERVICE_CATALOG.values()}
    for data in STAFF_DATA:
        if data["department"] not in departments and data["role"] != "admin":
            logger.warning("Department %s has no services, skipping %s", data["department"], data["name"])
            continue
        existing = await engine.assignment.list_staff(department=data["department"], limit=100)
        if any(s["name"] == data["name"] for s in existing.items):
            logger.info("Staff %s already exists, skipping", data["name"])
            continue
        staff = await engine.assignment.add_staff(
            name=data["name"],
            department=data["department"],
            role=data["role"],
            actor_id="seed",
        )
        logger.info("Seeded %s %s (%s)", staff["role"], staff["name"], staff["id"])
    logger.info("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
