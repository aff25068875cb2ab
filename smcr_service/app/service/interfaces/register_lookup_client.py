from abc import ABC, abstractmethod
from typing import Optional

from smcr_service.app.models.person import FcaVerification


class AbstractRegisterLookupClient(ABC):
    @abstractmethod
    async def lookup_individual(self, irn: str) -> Optional[FcaVerification]:
        """
        Looks up an individual on the external register by reference number.

        Args:
            irn: The individual reference number held on the person record.

        Returns:
            A fresh verification snapshot, or None if the register has no such individual.
            Transport and server errors are raised, not swallowed.
        """
        pass
