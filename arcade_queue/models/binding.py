"""
Group Binding Model

A binding lets the target tenant read and resolve the source tenant's
arcades. At most one binding exists per target tenant.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer
from datetime import datetime
from arcade_queue.database import Base


class GroupBinding(Base):
    __tablename__ = "group_bindings"

    id = Column(Integer, primary_key=True, autoincrement=True)

    source_tenant_id = Column(String(128), nullable=False)
    target_tenant_id = Column(String(128), unique=True, nullable=False, index=True)
    is_enabled = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        state = "on" if self.is_enabled else "off"
        return f"<GroupBinding {self.target_tenant_id} -> {self.source_tenant_id} ({state})>"
