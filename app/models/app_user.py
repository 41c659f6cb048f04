"""AppUser model - portal customers and back-office staff."""
import enum
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, Text
from sqlalchemy.sql import func
from app.database import Base, BigIntId


class ApprovalStatus(str, enum.Enum):
    """Customer approval state (managed by the registration workflow)."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class AppUser(Base):
    """
    Portal user profile.

    Registration, login and approval are handled elsewhere; the quote
    request core only reads the identity and approval flags.
    """

    __tablename__ = 'app_user'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(200), nullable=True)
    company_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(80), nullable=True)

    approval_status = Column(String(20), nullable=False, default=ApprovalStatus.PENDING.value)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_blocked = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def is_approved(self):
        return self.approval_status == ApprovalStatus.APPROVED.value

    @property
    def can_request_quotes(self):
        """Approved customers and admins may submit quote requests."""
        if not self.active or self.is_blocked:
            return False
        return self.is_admin or self.is_approved

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}', status='{self.approval_status}')>"
