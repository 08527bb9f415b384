from collections.abc import Iterator

from fastapi import Header
from sqlalchemy.orm import Session

from fishtrade.db.session import SessionLocal


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor_id(
    x_actor_id: str = Header(
        ...,
        alias="X-Actor-Id",
        min_length=1,
        max_length=36,
        description="Identity the mutation is attributed to in the inventory log.",
    ),
) -> str:
    return x_actor_id.strip()
