import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from smcr_service.app.models.person import FcaVerification, PersonRecord
from smcr_service.app.service.exceptions import ConfigurationError
from smcr_service.app.service.interfaces.register_lookup_client import AbstractRegisterLookupClient
from smcr_service.app.service.verification import NOTHING_TO_REFRESH, VerificationRunner, reverify_people


def make_people(count):
    return [
        PersonRecord(id=f"p{i}", firm_id="firm-1", employee_id=f"EMP00{i}", name=f"Person {i}", irn=f"IRN{i}")
        for i in range(1, count + 1)
    ]


@pytest.fixture
def mock_store():
    store = MagicMock()
    store.register_client = AsyncMock(spec=AbstractRegisterLookupClient)
    store.register_client.lookup_individual.return_value = FcaVerification(
        status="Approved", last_checked="2024-06-01T00:00:00+00:00"
    )
    store.update_person = AsyncMock()
    return store


@pytest.mark.asyncio
async def test_cancel_after_first_lookup_stops_the_run(mock_store):
    cancel_event = asyncio.Event()

    async def lookup_then_cancel(irn):
        cancel_event.set()
        return FcaVerification(status="Approved", last_checked="2024-06-01T00:00:00+00:00")

    mock_store.register_client.lookup_individual.side_effect = lookup_then_cancel

    result = await reverify_people(mock_store, make_people(3), cancel_event, delay_seconds=0)

    mock_store.register_client.lookup_individual.assert_awaited_once_with("IRN1")
    assert result.cancelled is True
    assert result.checked == 1
    assert result.total == 3
    assert result.message == "Re-verification cancelled after 1 of 3"


@pytest.mark.asyncio
async def test_successful_run_persists_each_verification(mock_store):
    result = await reverify_people(mock_store, make_people(2), asyncio.Event(), delay_seconds=0)

    assert mock_store.register_client.lookup_individual.await_count == 2
    assert mock_store.update_person.await_count == 2
    person_id, updates = mock_store.update_person.await_args.args
    assert person_id == "p2"
    assert updates["fca_verification"].status == "Approved"
    assert result.message == "Re-verified 2 of 2 people (0 failed)"
    assert result.cancelled is False


@pytest.mark.asyncio
async def test_failed_lookups_are_counted_and_run_continues(mock_store):
    mock_store.register_client.lookup_individual.side_effect = [
        Exception("register down"),
        None,
        FcaVerification(status="Approved", last_checked="2024-06-01T00:00:00+00:00"),
    ]

    result = await reverify_people(mock_store, make_people(3), asyncio.Event(), delay_seconds=0)

    assert result.checked == 3
    assert result.failed == 2
    assert result.message == "Re-verified 1 of 3 people (2 failed)"
    mock_store.update_person.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_records_lookup_outcome_per_failure(mock_store, mocker):
    mock_counter = mocker.patch("smcr_service.app.service.verification.verification_lookups_counter")
    mock_store.register_client.lookup_individual.side_effect = [None, Exception("register down")]

    await reverify_people(mock_store, make_people(2), asyncio.Event(), delay_seconds=0)

    assert [c.args for c in mock_counter.add.call_args_list] == [
        (1, {"outcome": "not_found", "stage": "run"}),
        (1, {"outcome": "error", "stage": "run"}),
    ]


@pytest.mark.asyncio
async def test_delay_is_applied_between_lookups_only(mock_store, mocker):
    mock_sleep = mocker.patch("smcr_service.app.service.verification.asyncio.sleep", new_callable=AsyncMock)

    await reverify_people(mock_store, make_people(3), asyncio.Event(), delay_seconds=0.5)

    assert mock_sleep.await_count == 2
    mock_sleep.assert_awaited_with(0.5)


@pytest.mark.asyncio
async def test_pre_cancelled_run_makes_no_calls(mock_store):
    cancel_event = asyncio.Event()
    cancel_event.set()

    result = await reverify_people(mock_store, make_people(2), cancel_event, delay_seconds=0)

    mock_store.register_client.lookup_individual.assert_not_awaited()
    assert result.message == "Re-verification cancelled after 0 of 2"


@pytest.mark.asyncio
async def test_empty_run_reports_nothing_to_refresh(mock_store):
    result = await reverify_people(mock_store, [], asyncio.Event(), delay_seconds=0)
    assert result.message == NOTHING_TO_REFRESH
    assert result.total == 0


@pytest.mark.asyncio
async def test_run_without_register_client_is_a_configuration_error(mock_store):
    mock_store.register_client = None
    with pytest.raises(ConfigurationError):
        await reverify_people(mock_store, make_people(1), asyncio.Event(), delay_seconds=0)


@pytest.mark.asyncio
async def test_runner_uses_stale_people_and_resets_after_run(mock_store):
    mock_store.find_stale_verifications.return_value = make_people(1)
    runner = VerificationRunner()

    result = await runner.run(mock_store, delay_seconds=0)

    assert result.checked == 1
    assert runner.last_result == result
    assert runner.is_running is False
    assert runner.cancel() is False
