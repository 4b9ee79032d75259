"""ORM model for agency clients that own projects."""

from sqlalchemy import Boolean, Column, Index, Integer, String, text

from app.models.base import Base, TimestampMixin


class Client(TimestampMixin, Base):
    """Client account. Names are unique among active clients only (soft delete frees the name)."""

    __tablename__ = "clients"
    __table_args__ = (
        Index(
            "uq_clients_active_name",
            "name",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    contact_person = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
