import enum

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from retailer_desk.models.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    SALES_REP = "sales_rep"


class SalesRep(TimestampMixin, Base):
    """Representatives and administrators share one table, split by ``role``."""

    __tablename__ = "sales_reps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.SALES_REP.value)
