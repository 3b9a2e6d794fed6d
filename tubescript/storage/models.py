from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from tubescript.core.database import Base


class Collection(Base):
  __tablename__ = "collections"

  owner_id: Mapped[str] = mapped_column(String, primary_key=True)
  name: Mapped[str] = mapped_column(String, primary_key=True)
  data: Mapped[list] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
