"""Last-result cache keyed by estimate id."""

from typing import Dict, Optional

from livepricing.models.pricing import PricingResult


class ResultCache:
    """Holds the most recent PricingResult per estimate.

    Entries are replaced wholesale; results are frozen models, so a cached
    entry is never changed in place.
    """

    def __init__(self):
        self._results: Dict[str, PricingResult] = {}

    def __contains__(self, estimate_id: object) -> bool:
        return estimate_id in self._results

    def __len__(self) -> int:
        return len(self._results)

    def get(self, estimate_id: str) -> Optional[PricingResult]:
        return self._results.get(estimate_id)

    def set(self, estimate_id: str, result: PricingResult) -> None:
        self._results[estimate_id] = result

    def delete(self, estimate_id: str) -> bool:
        return self._results.pop(estimate_id, None) is not None

    def clear(self) -> None:
        self._results.clear()
