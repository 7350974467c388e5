"""Per-project prompt queue and progression models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from storyprompts.persistence.database import Base


class UserPrompt(Base):
    """Facilitator-authored follow-up question waiting to be delivered."""

    __tablename__ = "user_prompts"
    __table_args__ = (
        Index("ix_user_prompts_pending", "project_id", "is_delivered", "priority"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, nullable=False, index=True)
    created_by = Column(String(255), nullable=False)
    parent_story_id = Column(Integer, nullable=True)
    text = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False, default=1)  # higher delivered first
    is_delivered = Column(Boolean, default=False, nullable=False)
    delivered_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=0)  # optimistic concurrency
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<UserPrompt(id={self.id}, project_id={self.project_id}, priority={self.priority}, delivered={self.is_delivered})>"


class ProjectPromptState(Base):
    """Where a project is in the chapter sequence."""

    __tablename__ = "project_prompt_states"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, nullable=False, unique=True, index=True)
    current_chapter_id = Column(Integer, ForeignKey("chapters.id"), nullable=False)
    current_chapter_order = Column(Integer, nullable=False)
    current_prompt_index = Column(Integer, nullable=False, default=0)
    last_prompt_delivered_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ProjectPromptState(project_id={self.project_id}, chapter_id={self.current_chapter_id}, "
            f"index={self.current_prompt_index})>"
        )


class Story(Base):
    """Recorded story; only the fields chapter completion needs."""

    __tablename__ = "stories"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, nullable=False, index=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id"), nullable=True, index=True)
    prompt_template_id = Column(Integer, ForeignKey("prompt_templates.id"), nullable=True)
    status = Column(String(20), nullable=False, default="processing")  # processing, ready, failed
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Story(id={self.id}, project_id={self.project_id}, status={self.status})>"


class PromptDelivery(Base):
    """Insert-only log of prompts handed to a project/user."""

    __tablename__ = "prompt_deliveries"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, nullable=True, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    prompt_template_id = Column(Integer, nullable=True, index=True)
    user_prompt_id = Column(Integer, nullable=True)
    provenance = Column(String(20), nullable=False)
    degraded = Column(Boolean, default=False, nullable=False)
    experiment_id = Column(Integer, nullable=True)
    variant_id = Column(Integer, nullable=True)
    delivered_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<PromptDelivery(id={self.id}, project_id={self.project_id}, provenance={self.provenance})>"
