from abc import ABC, abstractmethod

from pennywise.models import MerchantMapping


class Classifier(ABC):
    @abstractmethod
    def classify(self, description: str) -> MerchantMapping | None:
        """Return a categorization for the description when one is trusted enough."""
        pass

    @abstractmethod
    async def learn(
        self,
        description: str,
        category_id: str,
        category_name: str,
        subcategory_name: str = "",
    ) -> MerchantMapping:
        """Record a user-confirmed description-category pair."""
        pass
