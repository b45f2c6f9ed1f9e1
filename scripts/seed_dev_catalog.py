"""Seed script for populating development users and catalog products."""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

# Ensure project root is on PYTHONPATH when running as a script.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from sqlalchemy import select

import storefront.models.cart  # noqa: F401
import storefront.models.order  # noqa: F401

from storefront.core.config import settings
from storefront.db.session_async import AsyncSessionLocal
from storefront.domain.enums import UserRole
from storefront.models.product import Product
from storefront.schemas.user import UserCreate
from storefront.services import auth_service


@dataclass(frozen=True, slots=True)
class DevUser:
    email: str
    name: str
    password: str
    role: UserRole = UserRole.user
    address: str | None = None


@dataclass(frozen=True, slots=True)
class DevProduct:
    name: str
    slug: str
    price: Decimal
    description: str | None = None


DEV_USERS: tuple[DevUser, ...] = (
    DevUser(
        email="admin.dev@example.com",
        name="Dev Admin",
        password="AdminDev123!",
        role=UserRole.admin,
    ),
    DevUser(
        email="user1.dev@example.com",
        name="Dev Customer One",
        password="UserDev123!",
        address="12 Market Street",
    ),
    DevUser(
        email="user2.dev@example.com",
        name="Dev Customer Two",
        password="UserDev123!",
    ),
)

DEV_PRODUCTS: tuple[DevProduct, ...] = (
    DevProduct(name="Canvas Tote", slug="canvas-tote", price=Decimal("18.50"), description="Heavy cotton tote bag."),
    DevProduct(name="Enamel Mug", slug="enamel-mug", price=Decimal("12.00"), description="Camp-style mug, 350 ml."),
    DevProduct(name="Wool Beanie", slug="wool-beanie", price=Decimal("24.99")),
    DevProduct(name="Field Notebook", slug="field-notebook", price=Decimal("7.25"), description="Dot grid, 48 pages."),
)


async def seed_dev_users(session, logger: logging.Logger) -> tuple[int, int, int]:
    created = updated = skipped = 0
    for dev_user in DEV_USERS:
        existing = await auth_service.get_by_email(session, dev_user.email)
        if existing:
            if existing.role != dev_user.role:
                existing.role = dev_user.role
                session.add(existing)
                updated += 1
                logger.debug("Updated role for %s", dev_user.email)
            else:
                skipped += 1
                logger.debug("Skipped user %s (already up to date)", dev_user.email)
            continue

        user_in = UserCreate(
            email=dev_user.email,
            name=dev_user.name,
            password=dev_user.password,
            address=dev_user.address,
        )
        await auth_service.register_user(session, user_in, role=dev_user.role)
        created += 1
        logger.debug("Created user %s", dev_user.email)
    return created, updated, skipped


async def seed_dev_products(session, logger: logging.Logger) -> tuple[int, int, int]:
    created = updated = skipped = 0
    for seed in DEV_PRODUCTS:
        existing = await session.scalar(select(Product).where(Product.slug == seed.slug))
        if existing:
            if Decimal(existing.price) != seed.price or existing.description != seed.description:
                existing.name = seed.name
                existing.price = seed.price
                existing.description = seed.description
                updated += 1
                logger.debug("Updated product %s", seed.slug)
            else:
                skipped += 1
            continue

        session.add(
            Product(name=seed.name, slug=seed.slug, price=seed.price, description=seed.description)
        )
        created += 1
        logger.debug("Created product %s", seed.slug)
    return created, updated, skipped


async def main() -> None:
    logger = logging.getLogger("seed_dev_catalog")
    logger.info("Seeding development catalog into %s", settings.ASYNC_DATABASE_URL)

    async with AsyncSessionLocal() as session:
        users = await seed_dev_users(session, logger)
        products = await seed_dev_products(session, logger)
        await session.commit()

    logger.info("Users: %s created, %s updated, %s skipped", *users)
    logger.info("Products: %s created, %s updated, %s skipped", *products)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
