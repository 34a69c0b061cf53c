from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from retailer_desk.models.base import Base, TimestampMixin
from retailer_desk.models.region import Area, Distributor, Region, Territory


class Retailer(TimestampMixin, Base):
    __tablename__ = "retailers"
    __table_args__ = (CheckConstraint("points >= 0", name="ck_retailers_points_non_negative"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uid: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    routes: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    region_id: Mapped[int] = mapped_column(ForeignKey("regions.id"), nullable=False, index=True)
    area_id: Mapped[int] = mapped_column(ForeignKey("areas.id"), nullable=False, index=True)
    distributor_id: Mapped[int] = mapped_column(ForeignKey("distributors.id"), nullable=False, index=True)
    territory_id: Mapped[int] = mapped_column(ForeignKey("territories.id"), nullable=False, index=True)

    region: Mapped[Region] = relationship()
    area: Mapped[Area] = relationship()
    distributor: Mapped[Distributor] = relationship()
    territory: Mapped[Territory] = relationship()
