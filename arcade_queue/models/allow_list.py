"""
Allow-list Model

Per-tenant grants of privileged-operation rights, independent of whatever
role the chat platform reports for the user.
"""
from sqlalchemy import Column, String, DateTime, Index, Integer
from datetime import datetime
from arcade_queue.database import Base


class AllowListEntry(Base):
    __tablename__ = "allow_list_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)

    tenant_id = Column(String(128), nullable=False, index=True)

    # Qualified id: "<platform>:<user id>"
    user_id = Column(String(128), nullable=False)
    user_name = Column(String(255), nullable=True)

    added_by_id = Column(String(128), nullable=False)
    added_by_name = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_allow_list_tenant_user', 'tenant_id', 'user_id', unique=True),
    )

    def __repr__(self):
        return f"<AllowListEntry {self.user_id} (tenant={self.tenant_id})>"
