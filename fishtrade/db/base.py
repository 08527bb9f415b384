from sqlalchemy.orm import DeclarativeBase

# Alembic revision the ORM models correspond to. Bump together with a new
# migration under alembic/versions.
SCHEMA_REVISION = "20261019_0001"


class Base(DeclarativeBase):
    pass
