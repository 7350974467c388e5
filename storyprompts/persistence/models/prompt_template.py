"""Chapter and prompt template models."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from storyprompts.domain.models.prompts import Category, Difficulty
from storyprompts.persistence.database import Base


class Chapter(Base):
    """A thematic, ordered sequence of prompt slots."""

    __tablename__ = "chapters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, unique=True, index=True)  # defines succession
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    templates = relationship(
        "PromptTemplate", back_populates="chapter", order_by="PromptTemplate.order_index"
    )

    def __repr__(self) -> str:
        return f"<Chapter(id={self.id}, name={self.name}, order_index={self.order_index})>"


class PromptTemplate(Base):
    """Curated prompt catalog entry.

    A template either fills a slot in a chapter (``chapter_id`` and
    ``order_index`` set) or belongs to the fallback library (``is_library``),
    or both.
    """

    __tablename__ = "prompt_templates"
    __table_args__ = (
        UniqueConstraint("chapter_id", "order_index", name="uq_prompt_template_chapter_slot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    text = Column(Text, nullable=False)
    category = Column(String(20), default=Category.GENERAL.value, nullable=False, index=True)
    difficulty = Column(String(20), default=Difficulty.MEDIUM.value, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    follow_up_questions = Column(JSON, nullable=False, default=list)
    audio_url = Column(String(1024), nullable=True)
    chapter_id = Column(Integer, ForeignKey("chapters.id"), nullable=True, index=True)
    order_index = Column(Integer, nullable=True)  # slot position within chapter
    is_library = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    chapter = relationship("Chapter", back_populates="templates")

    def __repr__(self) -> str:
        return f"<PromptTemplate(id={self.id}, chapter_id={self.chapter_id}, order_index={self.order_index})>"
