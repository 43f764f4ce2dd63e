"""Budget Tracker — trailing spend vs. the facility's monthly budget."""
import logging
from dataclasses import dataclass
from enum import Enum

from app.models.records import FacilitySettings

logger = logging.getLogger("staffing-budget")


class BudgetStatus(str, Enum):
    UNDER = "UNDER"
    NEAR = "NEAR"
    OVER = "OVER"


@dataclass(frozen=True)
class BudgetSummary:
    monthly_budget: float
    alert_threshold: float
    spent: float
    remaining: float
    percent_used: float
    status: BudgetStatus
    configuration_valid: bool = True


class BudgetEngine:
    """
    Classifies spend against budget.

    status boundaries lean to the stricter state:
        percent_used <  threshold        -> UNDER
        threshold <= percent_used < 1.0  -> NEAR
        percent_used >= 1.0              -> OVER

    A negative configured budget is an invalid configuration: it is replaced
    by 0 and the status is forced to OVER so the facility gets a conservative
    signal instead of an error. A configured budget of exactly 0 is valid and
    yields percent_used = 0.
    """

    def evaluate(self, total_spend: float, settings: FacilitySettings) -> BudgetSummary:
        budget = settings.monthly_budget
        threshold = settings.alert_threshold  # already clamped to [0, 1]
        valid = budget >= 0
        if not valid:
            logger.warning(
                f"Facility {settings.facility_id}: negative monthly budget {budget}; using 0 and flagging OVER"
            )
            budget = 0.0

        percent_used = total_spend / budget if budget > 0 else 0.0
        status = BudgetStatus.OVER if not valid else self.classify(percent_used, threshold)

        return BudgetSummary(
            monthly_budget=budget,
            alert_threshold=threshold,
            spent=total_spend,
            remaining=round(budget - total_spend, 2),
            percent_used=percent_used,
            status=status,
            configuration_valid=valid,
        )

    @staticmethod
    def classify(percent_used: float, threshold: float) -> BudgetStatus:
        if percent_used >= 1.0:
            return BudgetStatus.OVER
        if percent_used >= threshold:
            return BudgetStatus.NEAR
        return BudgetStatus.UNDER
