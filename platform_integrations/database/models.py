# Platform Integrations Database Models
"""
SQLAlchemy models for the Platform Integrations service.
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id() -> str:
    return str(uuid4())


class Connection(Base):
    """A user's link to one external project-management platform."""
    
    __tablename__ = "platform_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "platform", "name", name="uq_connection_user_platform_name"),
    )
    
    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    platform = Column(String(50), nullable=False)  # jira, monday, trofos
    encrypted_config = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="disconnected")
    last_sync = Column(DateTime, nullable=True)
    last_sync_error = Column(Text, nullable=True)
    project_count = Column(Integer, nullable=False, default=0)
    connection_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary. Credentials are never included."""
        return {
            "id": self.id,
            "name": self.name,
            "platform": self.platform,
            "status": self.status,
            "project_count": self.project_count or 0,
            "last_sync": self.last_sync.isoformat() if self.last_sync else None,
            "last_sync_error": self.last_sync_error,
            "metadata": self.connection_metadata or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
    
    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.platform} user={self.user_id} status={self.status}>"
