"""Performer Ranker — personnel ranked by completed engagements for a facility."""
import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from app.models.records import Application, Duty, DutyStatus, Personnel
from app.services.metrics_engine import accepted_by_duty

logger = logging.getLogger("staffing-ranker")


@dataclass(frozen=True)
class RankedPerformer:
    personnel_id: str
    name: str
    completed_count: int
    rating: float


@dataclass(frozen=True)
class QualitySummary:
    avg_top_rating: float
    repeat_hires: int           # ranked personnel with more than one completed engagement
    total_personnel_hired: int  # distinct personnel with an accepted application


@dataclass(frozen=True)
class PerformerRanking:
    top_performers: Tuple[RankedPerformer, ...]
    quality: QualitySummary


class PerformerRanker:
    """
    Ranks over an extended look-back (cumulative track record), not just
    the report window.

    Ordering: completed_count desc, rating desc, personnel_id asc. The last
    key makes the sequence fully deterministic under ties.
    """

    def rank(
        self,
        applications: Iterable[Application],
        duties: Iterable[Duty],
        personnel: Dict[str, Personnel],
        limit: int = 5,
    ) -> PerformerRanking:
        status_by_duty = {d.id: d.status for d in duties}
        # one credited acceptance per duty, even if storage holds duplicates
        accepted = accepted_by_duty(applications).values()

        hired = {a.personnel_id for a in accepted}
        completed = Counter(
            a.personnel_id for a in accepted
            if status_by_duty.get(a.duty_id) == DutyStatus.COMPLETED
        )

        candidates: List[RankedPerformer] = []
        for personnel_id, count in completed.items():
            if count <= 0:
                continue
            person: Optional[Personnel] = personnel.get(personnel_id)
            candidates.append(RankedPerformer(
                personnel_id=personnel_id,
                name=person.name if person else "",
                completed_count=count,
                rating=person.rating if person else 0.0,
            ))

        candidates.sort(key=lambda p: (-p.completed_count, -p.rating, p.personnel_id))
        top = tuple(candidates[:max(limit, 0)])

        quality = QualitySummary(
            avg_top_rating=round(math.fsum(p.rating for p in top) / len(top), 2) if top else 0.0,
            repeat_hires=sum(1 for p in top if p.completed_count > 1),
            total_personnel_hired=len(hired),
        )
        logger.debug(f"Ranked {len(candidates)} performers, returning top {len(top)}")
        return PerformerRanking(top_performers=top, quality=quality)
