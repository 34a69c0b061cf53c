"""Assignment of retailers to sales representatives (many-to-many)."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from retailer_desk.models.base import Base


class SalesRepRetailer(Base):
    """One row per (representative, retailer) pair.

    The composite primary key is the storage-level guarantee that a pair is
    assigned at most once.
    """

    __tablename__ = "sales_rep_retailers"

    sales_rep_id: Mapped[int] = mapped_column(
        ForeignKey("sales_reps.id", ondelete="CASCADE"), primary_key=True
    )
    retailer_id: Mapped[int] = mapped_column(
        ForeignKey("retailers.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    assigned_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, server_default=func.now())
