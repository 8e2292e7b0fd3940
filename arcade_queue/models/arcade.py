"""
Arcade Model

An arcade is a named, queue-tracked place owned by one tenant (chat group).
Running statistics are persisted on the row rather than derived at read
time, so a history snapshot always matches what users saw.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Float, Index, Integer, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from arcade_queue.database import Base


class Arcade(Base):
    __tablename__ = "arcades"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Tenant id is "<platform>:<group>"
    tenant_id = Column(String(128), nullable=False, index=True)

    name = Column(String(255), nullable=False)

    # Ordered list of alias strings, unique across the tenant
    aliases = Column(JSON, nullable=False, default=list)

    # Live queue and running statistics
    current = Column(Integer, default=0, nullable=False)
    average = Column(Float, default=0.0, nullable=False)
    total_updates = Column(Integer, default=0, nullable=False)
    total_people = Column(Integer, default=0, nullable=False)

    last_updated = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updater_name = Column(String(255), nullable=False, default="system")
    last_updater_id = Column(String(128), nullable=False, default="system")

    # Provenance: set on rows materialized from a bound tenant's arcade.
    # NULL for arcades the tenant created itself.
    source_tenant_id = Column(String(128), nullable=True, index=True)
    is_bound = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    history = relationship(
        "ArcadeHistory",
        back_populates="arcade",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_arcade_tenant_name', 'tenant_id', 'name', unique=True),
        Index('idx_arcade_tenant_source', 'tenant_id', 'source_tenant_id'),
    )

    def __repr__(self):
        return f"<Arcade {self.name} current={self.current} (tenant={self.tenant_id})>"

    def matches_alias(self, alias: str) -> bool:
        return alias in (self.aliases or [])
