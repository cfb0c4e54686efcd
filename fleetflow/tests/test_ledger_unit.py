import pytest
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from fleetflow.core.locks import KeyedLock
from fleetflow.services.exceptions import (
    CapacityExceededError,
    DriverUnavailableError,
    OdometerRegressionError,
    StorageFailureError,
    TripNotFoundError,
    TripNotOpenError,
    VehicleUnavailableError,
)
from fleetflow.services.ledger import FleetLedger
from fleetflow.services.validators import BusinessRules


FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


def _row(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def _ledger(session, strict=True):
    return FleetLedger(session, locks=KeyedLock(), strict=strict, clock=lambda: FIXED_NOW)


def _vehicle(**overrides):
    fields = dict(id=1, status="Available", max_payload=20000, odometer=50000)
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _driver(**overrides):
    fields = dict(id=2, status="On Duty", license_expiry=date(2030, 1, 1), total_trips=0, completed_trips=0)
    fields.update(overrides)
    return SimpleNamespace(**fields)


@pytest.mark.asyncio
async def test_dispatch_lost_compare_and_set_is_vehicle_unavailable(mock_async_session):
    lost = MagicMock()
    lost.rowcount = 0
    mock_async_session.execute.side_effect = [_row(_vehicle()), _row(_driver()), lost]

    with pytest.raises(VehicleUnavailableError):
        await _ledger(mock_async_session).dispatch(1, 2, "A", "B", 100)

    mock_async_session.add.assert_not_called()
    mock_async_session.rollback.assert_awaited_once()
    mock_async_session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_dispatch_writes_nothing_when_capacity_fails(mock_async_session):
    mock_async_session.execute.side_effect = [_row(_vehicle(max_payload=500))]

    with pytest.raises(CapacityExceededError):
        await _ledger(mock_async_session).dispatch(1, 2, "A", "B", 501)

    # Only the vehicle was read; driver and compare-and-set never ran
    assert mock_async_session.execute.await_count == 1
    mock_async_session.add.assert_not_called()


def _affected(rowcount):
    result = MagicMock()
    result.rowcount = rowcount
    return result


def _statement(session, call):
    return str(session.execute.await_args_list[call].args[0])


@pytest.mark.asyncio
async def test_dispatch_success_builds_trip(mock_async_session):
    mock_async_session.execute.side_effect = [_row(_vehicle()), _row(_driver()), _affected(1), _affected(1)]

    await _ledger(mock_async_session).dispatch(1, 2, "Mumbai", "Pune", 12000, revenue=None)

    trip = mock_async_session.add.call_args.args[0]
    assert trip.status == "Dispatched"
    assert trip.start_time == FIXED_NOW
    assert trip.revenue == 0
    # Driver claim is conditional on status and increments the counter in SQL
    claim = _statement(mock_async_session, 3)
    assert claim.startswith("UPDATE drivers")
    assert "drivers.total_trips +" in claim
    assert "drivers.status IN" in claim
    mock_async_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_dispatch_lost_driver_claim_is_driver_unavailable(mock_async_session):
    current = MagicMock()
    current.scalar.return_value = "On Trip"
    mock_async_session.execute.side_effect = [
        _row(_vehicle()), _row(_driver()), _affected(1), _affected(0), current,
    ]

    with pytest.raises(DriverUnavailableError) as exc_info:
        await _ledger(mock_async_session).dispatch(1, 2, "A", "B", 100)

    assert exc_info.value.status == "On Trip"
    mock_async_session.add.assert_not_called()
    mock_async_session.rollback.assert_awaited_once()
    mock_async_session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_database_error_surfaces_as_storage_failure(mock_async_session):
    mock_async_session.execute.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))

    with pytest.raises(StorageFailureError) as exc_info:
        await _ledger(mock_async_session).dispatch(1, 2, "A", "B", 100)

    assert exc_info.value.status_code == 500
    mock_async_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_complete_missing_trip(mock_async_session):
    mock_async_session.get.return_value = None

    with pytest.raises(TripNotFoundError):
        await _ledger(mock_async_session).complete(7, 100)


@pytest.mark.asyncio
async def test_strict_complete_checks_odometer(mock_async_session):
    trip = SimpleNamespace(id=7, vehicle_id=1, driver_id=2, status="Dispatched")
    mock_async_session.get.return_value = trip
    mock_async_session.execute.side_effect = [_row(trip), _row(_vehicle()), _row(_driver())]

    with pytest.raises(OdometerRegressionError) as exc_info:
        await _ledger(mock_async_session).complete(7, 49999.5)

    assert exc_info.value.message == "Final odometer (49999.5km) is below the current reading (50000km)"
    assert trip.status == "Dispatched"


@pytest.mark.asyncio
async def test_permissive_complete_skips_odometer_check(mock_async_session):
    trip = SimpleNamespace(id=7, vehicle_id=1, driver_id=2, status="Completed")
    vehicle = _vehicle(status="In Shop")
    mock_async_session.get.return_value = trip
    mock_async_session.execute.side_effect = [
        _row(trip), _row(vehicle), _row(_driver(status="Off Duty")), _affected(1), _affected(1),
    ]

    await _ledger(mock_async_session, strict=False).complete(7, 10)

    assert vehicle.status == "Available"
    assert vehicle.odometer == 10
    # Permissive close does not require the trip to be Dispatched
    assert "trips.status" not in _statement(mock_async_session, 3)
    assert "drivers.completed_trips +" in _statement(mock_async_session, 4)
    mock_async_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_strict_complete_loses_race_to_another_closer(mock_async_session):
    trip = SimpleNamespace(id=7, vehicle_id=1, driver_id=2, status="Dispatched")
    mock_async_session.get.return_value = trip
    mock_async_session.execute.side_effect = [
        _row(trip), _row(_vehicle()), _row(_driver(status="On Trip")), _affected(0),
    ]

    with pytest.raises(TripNotOpenError):
        await _ledger(mock_async_session).complete(7, 50100)

    assert "trips.status" in _statement(mock_async_session, 3)
    mock_async_session.commit.assert_not_called()


def test_capacity_message_uses_whole_kilograms():
    e = CapacityExceededError(25000.0, 20000)
    assert e.message == "Cargo weight (25000kg) exceeds vehicle capacity (20000kg)"
    assert e.code == "CapacityExceeded"
    assert e.status_code == 400


def test_driver_unavailable_message():
    assert DriverUnavailableError(3, "Suspended").message == (
        "Driver is currently Suspended. Must be On Duty or Available."
    )
    assert DriverUnavailableError(3).status == "Unknown"


def test_business_rules():
    today = date(2025, 3, 14)

    assert BusinessRules.vehicle_dispatchable("Available")
    assert not BusinessRules.vehicle_dispatchable("In Shop")
    assert not BusinessRules.vehicle_dispatchable(None)
    assert BusinessRules.within_capacity(20000, 20000)
    assert not BusinessRules.within_capacity(20000.5, 20000)
    assert BusinessRules.driver_dispatchable("On Duty")
    assert BusinessRules.driver_dispatchable("Available")
    assert not BusinessRules.driver_dispatchable("On Trip")
    assert BusinessRules.license_valid_on(today, today)
    assert not BusinessRules.license_valid_on(today - timedelta(days=1), today)
    assert BusinessRules.odometer_advances(100, 100)
    assert not BusinessRules.odometer_advances(100, 99)


def test_today_follows_the_clock():
    ledger = _ledger(MagicMock())
    assert ledger.now() == FIXED_NOW
    assert ledger.today() == date(2025, 3, 14)
