import uuid

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, JSON, Uuid
from sqlalchemy.orm import relationship
from todo_api.database import Base
from todo_api.models.user import User, utcnow

STATUSES = ("pending", "in_progress", "completed")
PRIORITIES = ("low", "medium", "high")


class Todo(Base):
    __tablename__ = "todos"
    __table_args__ = (
        Index("ix_todos_user_id_status", "user_id", "status"),
        Index("ix_todos_due_date", "due_date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending/in_progress/completed
    priority = Column(String(20), nullable=False, default="medium")  # low/medium/high
    due_date = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship(User, back_populates="todos")
