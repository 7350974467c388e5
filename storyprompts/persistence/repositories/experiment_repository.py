"""Experiment repository."""

from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storyprompts.persistence.models.experiment import (
    Experiment,
    ExperimentAssignment,
    ExperimentStatus,
    ExperimentVariant,
)
from storyprompts.persistence.repositories.base import BaseRepository


class ExperimentRepository(BaseRepository[Experiment]):
    """Repository for Experiment entities and their variants."""

    def __init__(self, session: AsyncSession):
        """Initialize experiment repository."""
        super().__init__(Experiment, session)

    async def get_with_variants(self, experiment_id: int) -> Experiment | None:
        """Get an experiment with its variants loaded."""
        stmt = (
            select(Experiment)
            .where(Experiment.id == experiment_id)
            .options(selectinload(Experiment.variants))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_with_variants(self, variants: list[dict], **data) -> Experiment:
        """Create an experiment and its variants in one commit."""
        experiment = Experiment(**data)
        for position, variant_data in enumerate(variants):
            experiment.variants.append(ExperimentVariant(position=position, **variant_data))
        self.session.add(experiment)
        await self.session.commit()
        return await self.get_with_variants(experiment.id)

    async def list_running(self, category: str | None = None, now: datetime | None = None) -> list[Experiment]:
        """List running experiments inside their date range.

        An experiment without a category applies to every category.
        """
        now = now or datetime.utcnow()
        stmt = (
            select(Experiment)
            .where(
                Experiment.status == ExperimentStatus.RUNNING.value,
                or_(Experiment.start_date.is_(None), Experiment.start_date <= now),
                or_(Experiment.end_date.is_(None), Experiment.end_date > now),
            )
            .options(selectinload(Experiment.variants))
            .order_by(Experiment.id.asc())
        )
        if category is not None:
            stmt = stmt.where(or_(Experiment.category.is_(None), Experiment.category == category))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def log_assignment(self, user_id: str, experiment_id: int, variant_id: int) -> bool:
        """Insert an assignment audit row; an existing row is left untouched.

        Returns:
            True if a new row was written
        """
        existing = await self.session.execute(
            select(ExperimentAssignment.id).where(
                ExperimentAssignment.user_id == user_id,
                ExperimentAssignment.experiment_id == experiment_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            return False
        self.session.add(
            ExperimentAssignment(user_id=user_id, experiment_id=experiment_id, variant_id=variant_id)
        )
        try:
            await self.session.commit()
        except IntegrityError:
            # Concurrent insert for the same user won the unique constraint
            await self.session.rollback()
            return False
        return True
