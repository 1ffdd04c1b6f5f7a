import uuid

from sqlalchemy import Boolean, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from issuance.db.base import Base, TimestampMixin


class Tenant(TimestampMixin, Base):
    """A business account; every sequence and document belongs to exactly one."""

    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, server_default=func.gen_random_uuid())
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(63), unique=True, nullable=False)
    registration_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default="ILS")

    members: Mapped[list["TenantMember"]] = relationship(back_populates="tenant")  # noqa: F821
