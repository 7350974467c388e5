"""A/B experiment models for comparing prompt variants."""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from storyprompts.persistence.database import Base


class ExperimentStatus(str, enum.Enum):
    """Lifecycle of an experiment."""
    DRAFT = "draft"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class Experiment(Base):
    """A named A/B test grouping prompt variants."""

    __tablename__ = "experiments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(20), nullable=True, index=True)  # NULL applies to any category
    status = Column(String(20), nullable=False, default=ExperimentStatus.DRAFT.value)
    target_metric = Column(String(50), nullable=False, default="engagement")
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    variants = relationship(
        "ExperimentVariant",
        back_populates="experiment",
        cascade="all, delete-orphan",
        order_by="ExperimentVariant.position",
    )

    def __repr__(self) -> str:
        return f"<Experiment(id={self.id}, name={self.name}, status={self.status})>"


class ExperimentVariant(Base):
    """One arm of an experiment with its share of traffic."""

    __tablename__ = "experiment_variants"
    __table_args__ = (
        UniqueConstraint("experiment_id", "name", name="uq_experiment_variant_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    experiment_id = Column(Integer, ForeignKey("experiments.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    prompt_template_id = Column(Integer, ForeignKey("prompt_templates.id"), nullable=True)
    traffic_percentage = Column(Integer, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    experiment = relationship("Experiment", back_populates="variants")

    def __repr__(self) -> str:
        return f"<ExperimentVariant(id={self.id}, name={self.name}, traffic={self.traffic_percentage})>"


class ExperimentAssignment(Base):
    """Audit record of a user's (recomputable) variant assignment."""

    __tablename__ = "experiment_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "experiment_id", name="uq_experiment_assignment_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    experiment_id = Column(Integer, ForeignKey("experiments.id", ondelete="CASCADE"), nullable=False)
    variant_id = Column(Integer, ForeignKey("experiment_variants.id", ondelete="CASCADE"), nullable=False)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<ExperimentAssignment(user_id={self.user_id}, experiment_id={self.experiment_id}, variant_id={self.variant_id})>"
