from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class StorageItem(Base):
    """
    Durable key/value storage, one row per key (the server-side counterpart of
    browser localStorage). Holds each user's serialized office document and
    its dirty flag.
    """

    __tablename__ = "storage_items"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
