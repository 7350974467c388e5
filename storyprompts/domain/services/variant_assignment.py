"""Deterministic A/B variant assignment.

A user's variant is recomputed from a hash of (user, experiment) on every
call; nothing random is involved, so the same user always lands in the same
variant while the experiment's split is unchanged. Assignments are also
written to an insert-only audit table.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from storyprompts.domain.errors import ExperimentConfigurationError
from storyprompts.persistence.models import Experiment, ExperimentStatus
from storyprompts.persistence.repositories import ExperimentRepository

logger = logging.getLogger(__name__)

BUCKETS = 100


@dataclass(frozen=True)
class VariantSpec:
    """One arm of an experiment and its share of traffic."""

    name: str
    traffic_percentage: int
    prompt_template_id: int | None = None
    id: int | None = None


@dataclass(frozen=True)
class VariantAssignment:
    """The variant a user sees for an experiment."""

    experiment_id: int
    variant_id: int | None
    variant_name: str
    prompt_template_id: int | None
    bucket: int


def _stable_hash(value: str) -> int:
    return int.from_bytes(hashlib.sha256(value.encode("utf-8")).digest()[:8], "big")


def variant_bucket(user_id: str, experiment_id: int | str) -> int:
    """Percentile position in ``[0, 100)`` of a user within an experiment."""
    return _stable_hash(f"{user_id}{experiment_id}") % BUCKETS


def assign_variant(user_id: str, experiment_id: int | str, variants: Sequence[VariantSpec]) -> VariantSpec:
    """Pick the variant whose cumulative traffic range contains the user's bucket.

    Variants are walked in the given order. The first variant is returned when
    no range matches.
    """
    if not variants:
        raise ExperimentConfigurationError(f"Experiment {experiment_id} has no variants")

    bucket = variant_bucket(user_id, experiment_id)
    cumulative = 0
    for variant in variants:
        cumulative += variant.traffic_percentage
        if bucket < cumulative:
            return variant
    return variants[0]


def validate_experiment(variants: Sequence[VariantSpec]) -> None:
    """Check that a traffic split can be used.

    Raises:
        ExperimentConfigurationError: If there are no variants, a name repeats,
            a percentage is not a non-negative integer, or the total is not 100
    """
    if not variants:
        raise ExperimentConfigurationError("An experiment needs at least one variant")

    names = [v.name for v in variants]
    if len(set(names)) != len(names):
        raise ExperimentConfigurationError("Variant names must be unique")

    for variant in variants:
        pct = variant.traffic_percentage
        if isinstance(pct, bool) or not isinstance(pct, int) or pct < 0:
            raise ExperimentConfigurationError(
                f"Variant {variant.name!r} has invalid traffic percentage {pct!r}"
            )

    total = sum(v.traffic_percentage for v in variants)
    if total != BUCKETS:
        raise ExperimentConfigurationError(f"Traffic percentages must sum to 100, got {total}")


def _specs(experiment: Experiment) -> list[VariantSpec]:
    return [
        VariantSpec(
            id=v.id,
            name=v.name,
            traffic_percentage=v.traffic_percentage,
            prompt_template_id=v.prompt_template_id,
        )
        for v in experiment.variants
    ]


class ExperimentService:
    """Service for prompt experiments and user variant assignment."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize experiment service."""
        self.session = session
        self.experiment_repo = ExperimentRepository(session)

    async def create_experiment(
        self,
        name: str,
        variants: Sequence[VariantSpec],
        description: str | None = None,
        category: str | None = None,
        target_metric: str = "engagement",
        status: ExperimentStatus = ExperimentStatus.DRAFT,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Experiment:
        """Create an experiment after validating its traffic split.

        Raises:
            ExperimentConfigurationError: If the variants are invalid
        """
        validate_experiment(variants)
        experiment = await self.experiment_repo.create_with_variants(
            [
                {
                    "name": v.name,
                    "traffic_percentage": v.traffic_percentage,
                    "prompt_template_id": v.prompt_template_id,
                }
                for v in variants
            ],
            name=name,
            description=description,
            category=category,
            target_metric=target_metric,
            status=status.value,
            start_date=start_date,
            end_date=end_date,
        )
        logger.info(
            f"Created experiment {experiment.id} ({name}) with {len(variants)} variants",
            extra={"experiment_id": experiment.id},
        )
        return experiment

    async def get_experiment(self, experiment_id: int) -> Experiment | None:
        return await self.experiment_repo.get_with_variants(experiment_id)

    async def set_status(self, experiment_id: int, status: ExperimentStatus) -> Experiment | None:
        """Move an experiment through its lifecycle."""
        experiment = await self.experiment_repo.update(experiment_id, status=status.value)
        if experiment is None:
            return None
        return await self.experiment_repo.get_with_variants(experiment_id)

    async def get_active_experiments(self, category: str | None = None) -> list[Experiment]:
        """Running experiments that apply to ``category``."""
        return await self.experiment_repo.list_running(category)

    async def select_experiment_for_user(self, user_id: str, category: str | None = None) -> Experiment | None:
        """Pick one of the running experiments for a user, stably."""
        experiments = await self.get_active_experiments(category)
        if not experiments:
            return None
        return experiments[_stable_hash(user_id) % len(experiments)]

    async def assign(self, user_id: str, experiment_id: int) -> VariantAssignment | None:
        """Variant of ``experiment_id`` for ``user_id``; None if the experiment is unknown."""
        experiment = await self.experiment_repo.get_with_variants(experiment_id)
        if experiment is None:
            return None
        return self._assign(user_id, experiment)

    def _assign(self, user_id: str, experiment: Experiment) -> VariantAssignment:
        variant = assign_variant(user_id, experiment.id, _specs(experiment))
        return VariantAssignment(
            experiment_id=experiment.id,
            variant_id=variant.id,
            variant_name=variant.name,
            prompt_template_id=variant.prompt_template_id,
            bucket=variant_bucket(user_id, experiment.id),
        )

    async def get_prompt_variant(self, user_id: str, category: str | None = None) -> VariantAssignment | None:
        """Assign a user within the experiment running for a category and log it."""
        experiment = await self.select_experiment_for_user(user_id, category)
        if experiment is None or not experiment.variants:
            return None
        assignment = self._assign(user_id, experiment)
        if assignment.variant_id is not None:
            await self.log_assignment(user_id, assignment.experiment_id, assignment.variant_id)
        return assignment

    async def log_assignment(self, user_id: str, experiment_id: int, variant_id: int) -> bool:
        """Record an assignment once; repeated calls leave the first row alone."""
        created = await self.experiment_repo.log_assignment(user_id, experiment_id, variant_id)
        if created:
            logger.debug(
                f"Logged assignment of {user_id} to variant {variant_id}",
                extra={"experiment_id": experiment_id},
            )
        return created
