# storefront/db/base.py
from sqlalchemy.orm import declarative_base

# Shared by every model and by Alembic autogenerate.
Base = declarative_base()
