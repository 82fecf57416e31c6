"""
SQLAlchemy ORM models for the Visitor Management System.
Entities: User, Company, Visitor, Visit.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    ForeignKey,
    Index,
    func,
    Boolean,
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

ROLE_ADMIN = "admin"
ROLE_HOST = "host"


# PUBLIC_INTERFACE
class User(Base):
    """
    User model.
    Admins and hosts; company_name groups users into a tenant.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)    # pbkdf2_sha256 hash
    role = Column(String(16), nullable=False, default=ROLE_HOST)
    company_name = Column(String(255), nullable=True, index=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    company = relationship(
        "Company",
        back_populates="user",
        uselist=False,
        foreign_keys="Company.id",
        passive_deletes=True,
    )
    visits = relationship("Visit", back_populates="host", passive_deletes=True)


# PUBLIC_INTERFACE
class Company(Base):
    """
    Company profile row, keyed by the owning user's id.
    admin_id points at the admin who created a host; it is null for admins.
    """
    __tablename__ = "companies"

    id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=True)
    role = Column(String(16), nullable=False, default=ROLE_ADMIN)
    company_name = Column(String(255), nullable=False, index=True)
    mobile_number = Column(String(20), nullable=True)
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="company", foreign_keys=[id])


# PUBLIC_INTERFACE
class Visitor(Base):
    """
    Visitor model.
    A visitor's declared identity at one visit; a new row is stored per check-in.
    """
    __tablename__ = "visitors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    designation = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    company_tel = Column(String(20), nullable=True)
    website = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    photo = Column(Text, nullable=True)            # base64 data URL
    id_card_photo = Column(Text, nullable=True)    # base64 data URL
    id_card_number = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    visits = relationship("Visit", back_populates="visitor", passive_deletes=True)


# PUBLIC_INTERFACE
class Visit(Base):
    """
    Visit model.
    Records a check-in and, once, its check-out. visitor_email and
    company_name are copied at check-in so the partial unique index can
    keep a visitor from being checked in twice to the same company.
    """
    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    visitor_id = Column(Integer, ForeignKey("visitors.id", ondelete="CASCADE"), nullable=False)
    host_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reason = Column(Text, nullable=True)
    items_carried = Column(Text, nullable=True)
    check_in_time = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    check_out_time = Column(DateTime(timezone=True), nullable=True)
    visitor_email = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=False)

    visitor = relationship("Visitor", back_populates="visits")
    host = relationship("User", back_populates="visits")

    __table_args__ = (
        Index(
            "uq_visits_active_visitor_company",
            "visitor_email",
            "company_name",
            unique=True,
            postgresql_where=check_out_time.is_(None),
            sqlite_where=check_out_time.is_(None),
        ),
    )
