import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def new_public_id() -> str:
    return str(uuid.uuid4())


class BaseModel(Base):
    """
    Columns shared by users, households, memberships, invitations and finance rows.

    Foreign keys and membership lookups use the integer `id`. `uuid` is the
    identifier shown to clients next to it. Timestamps come from the database
    clock so that ordering (members by join time, invitations newest first)
    does not depend on which worker wrote the row.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(primary_key=True, index=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String(36), default=new_public_id, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True
    )
