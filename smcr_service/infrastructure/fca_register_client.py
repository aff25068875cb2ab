# Client for the external FCA register lookup
import logging
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import Depends

from smcr_service.app.config import settings
from smcr_service.app.dependencies.workspace import get_http_client
from smcr_service.app.models.firm import utc_now_iso
from smcr_service.app.models.person import FcaVerification
from smcr_service.app.observability import verification_lookups_counter
from smcr_service.app.service.interfaces.register_lookup_client import AbstractRegisterLookupClient
from smcr_service.app.service.mappers import map_fca_verification, parse_json_object

logger = logging.getLogger(__name__)


class FcaRegisterClient(AbstractRegisterLookupClient):
    def __init__(self, http_client: httpx.AsyncClient, base_url: Optional[str] = None):
        self.http_client = http_client
        self.base_url = base_url if base_url is not None else settings.FCA_REGISTER_URL

    async def lookup_individual(self, irn: str) -> Optional[FcaVerification]:
        if not self.base_url:
            logger.warning("FCA_REGISTER_URL not set. Cannot look up individuals. Returning None.")
            verification_lookups_counter.add(1, {"outcome": "unconfigured"})
            return None

        request_url = f"{self.base_url.rstrip('/')}/individual/{quote(irn.strip(), safe='')}"
        logger.debug(f"Querying FCA register: {request_url}")

        response = await self.http_client.get(request_url)
        if response.status_code == 404:
            logger.info(f"IRN {irn} not found on FCA register.")
            verification_lookups_counter.add(1, {"outcome": "not_found"})
            return None
        response.raise_for_status()

        body = parse_json_object(response.json())
        individual = body.get("individual") if isinstance(body.get("individual"), dict) else body
        snapshot = dict(individual)
        snapshot["lastChecked"] = utc_now_iso()
        verification = map_fca_verification(snapshot)
        verification_lookups_counter.add(1, {"outcome": "found"})
        logger.info(f"FCA register returned status '{verification.status}' for IRN {irn}.")
        return verification


# DI provider for FcaRegisterClient
def get_register_lookup_client(
    http_client: httpx.AsyncClient = Depends(get_http_client)
) -> AbstractRegisterLookupClient:
    return FcaRegisterClient(http_client=http_client)
