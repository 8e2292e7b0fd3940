"""
Arcade History Model

Append-only audit trail: one row per queue update, per scheduled reset and
one zeroed row when an arcade is created. Rows are never updated.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship
from datetime import datetime
from arcade_queue.database import Base


class ArcadeHistory(Base):
    __tablename__ = "arcade_history"

    id = Column(Integer, primary_key=True, autoincrement=True)

    arcade_id = Column(
        Integer,
        ForeignKey("arcades.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Duplicated from the arcade so tenant-wide deletes need no join
    tenant_id = Column(String(128), nullable=False)

    count = Column(Integer, nullable=False)
    updater_name = Column(String(255), nullable=False)
    updater_id = Column(String(128), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    arcade = relationship("Arcade", back_populates="history")

    __table_args__ = (
        Index('idx_history_arcade', 'arcade_id', 'created_at'),
        Index('idx_history_tenant', 'tenant_id'),
    )

    def __repr__(self):
        return f"<ArcadeHistory arcade={self.arcade_id} count={self.count}>"
