"""
Bulk re-verification of people against the external register.

Runs are strictly sequential and rate limited: one lookup at a time with a fixed
delay between lookups. Cancellation is cooperative; a lookup already in flight
is allowed to finish, the next one is simply never started.
"""
import asyncio
import logging
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel

from smcr_service.app.config import settings
from smcr_service.app.models.person import PersonRecord
from smcr_service.app.observability import tracer, verification_lookups_counter
from smcr_service.app.service.exceptions import ConfigurationError

if TYPE_CHECKING:
    from smcr_service.app.service.store import SmcrDataStore

logger = logging.getLogger(__name__)

NOTHING_TO_REFRESH = "No stale verifications to refresh"


class VerificationRunResult(BaseModel):
    total: int
    checked: int
    failed: int
    cancelled: bool
    message: str


async def reverify_people(
    store: "SmcrDataStore",
    people: List[PersonRecord],
    cancel_event: asyncio.Event,
    delay_seconds: Optional[float] = None,
) -> VerificationRunResult:
    if store.register_client is None:
        raise ConfigurationError("No register lookup client configured for re-verification")
    delay = settings.VERIFICATION_DELAY_SECONDS if delay_seconds is None else delay_seconds
    total = len(people)
    if total == 0:
        return VerificationRunResult(total=0, checked=0, failed=0, cancelled=False, message=NOTHING_TO_REFRESH)

    checked = 0
    failed = 0
    cancelled = False
    with tracer.start_as_current_span("smcr.reverify_people") as span:
        span.set_attribute("verification.total", total)
        for index, person in enumerate(people):
            if cancel_event.is_set():
                cancelled = True
                break
            if index > 0 and delay > 0:
                await asyncio.sleep(delay)
            # The flag may have been set while we slept
            if cancel_event.is_set():
                cancelled = True
                break

            checked += 1
            try:
                verification = await store.register_client.lookup_individual(person.irn or "")
                if verification is None:
                    failed += 1
                    verification_lookups_counter.add(1, {"outcome": "not_found", "stage": "run"})
                    logger.info(f"No register record for person {person.id} (IRN {person.irn})")
                    continue
                await store.update_person(person.id, {"fca_verification": verification})
            except Exception as e:
                failed += 1
                verification_lookups_counter.add(1, {"outcome": "error", "stage": "run"})
                logger.warning(f"Re-verification failed for person {person.id} (IRN {person.irn}): {e}")
        span.set_attribute("verification.checked", checked)
        span.set_attribute("verification.cancelled", cancelled)

    if cancelled:
        message = f"Re-verification cancelled after {checked} of {total}"
    else:
        message = f"Re-verified {checked - failed} of {total} people ({failed} failed)"
    logger.info(message)
    return VerificationRunResult(total=total, checked=checked, failed=failed, cancelled=cancelled, message=message)


class VerificationRunner:
    """Holds the cancellation signal of the run in progress so another request can stop it."""

    def __init__(self):
        self._cancel_event: Optional[asyncio.Event] = None
        self.last_result: Optional[VerificationRunResult] = None

    @property
    def is_running(self) -> bool:
        return self._cancel_event is not None

    async def run(self, store: "SmcrDataStore", delay_seconds: Optional[float] = None) -> VerificationRunResult:
        if self._cancel_event is not None:
            raise RuntimeError("A re-verification run is already in progress")
        self._cancel_event = asyncio.Event()
        try:
            stale = store.find_stale_verifications()
            logger.info(f"Starting re-verification of {len(stale)} stale people")
            self.last_result = await reverify_people(store, stale, self._cancel_event, delay_seconds)
        finally:
            self._cancel_event = None
        return self.last_result

    def cancel(self) -> bool:
        if self._cancel_event is None:
            return False
        self._cancel_event.set()
        return True
