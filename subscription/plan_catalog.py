"""Plan catalog: the purchasable plans, priced in the user's currency."""

from typing import List, Optional

from subscription.api_client import SubscriptionApi
from subscription.errors import ApiError
from subscription.models import Plan
from utils.logger import logger


class PlanCatalog:
    """
    Fetches plans for one currency at a time.

    A failed fetch leaves an empty list and sets `error`. Nothing is retried.
    """

    LOAD_ERROR = "Failed to load subscription information"

    def __init__(self, api: SubscriptionApi):
        self.api = api
        self.plans: List[Plan] = []
        self.currency_code: Optional[str] = None
        self.error: Optional[str] = None

    async def fetch_plans(self, currency_code: str) -> List[Plan]:
        self.error = None
        try:
            response = await self.api.get_plans(currency_code)
            if not response.success:
                logger.error(f"Failed to load plans: {response.message}")
                self._fail()
                return self.plans

            raw_plans = response.data_dict().get('plans') or []
            self.plans = [Plan.from_dict(p) for p in raw_plans]
            self.currency_code = currency_code
            logger.debug(f"Loaded {len(self.plans)} plans in {currency_code}")
        except (ApiError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Error fetching plans: {e}")
            self._fail()

        return self.plans

    def _fail(self) -> None:
        self.plans = []
        self.currency_code = None
        self.error = self.LOAD_ERROR

    def find(self, plan_id: str) -> Optional[Plan]:
        return next((p for p in self.plans if p.id == plan_id), None)

    def paid_plans(self) -> List[Plan]:
        return [p for p in self.plans if p.id != 'free']
