from datetime import datetime

import pytest
import pytz

NEW_YORK = pytz.timezone("America/New_York")
FAR_BOOKING = "2025-03-05T10:00:00-05:00"


@pytest.fixture
def store_with_far_booking(mock_store):
    """Store that only returns bookings inside the requested window."""

    async def list_booked_starts(clinic_id, start, end):
        booked = datetime.fromisoformat(FAR_BOOKING)
        return [FAR_BOOKING] if start <= booked < end else []

    mock_store.list_booked_starts.side_effect = list_booked_starts
    return mock_store


@pytest.mark.asyncio
async def test_far_future_day_excludes_its_bookings(availability, clinic, store_with_far_booking, wednesday_morning):
    slots = await availability.slots_for_date(clinic, "2025-03-05", limit=48, now=wednesday_morning)
    starts = [s.start for s in slots]

    assert FAR_BOOKING not in starts
    assert "2025-03-05T09:30:00-05:00" in starts
    assert "2025-03-05T10:30:00-05:00" in starts


@pytest.mark.asyncio
async def test_bookings_are_fetched_for_the_requested_day(availability, clinic, mock_store, wednesday_morning):
    await availability.slots_for_date(clinic, "2025-03-05", now=wednesday_morning)

    _, start, end = mock_store.list_booked_starts.await_args.args
    assert start == NEW_YORK.localize(datetime(2025, 3, 4, 23, 30))
    assert end == NEW_YORK.localize(datetime(2025, 3, 6, 0, 30))


@pytest.mark.asyncio
async def test_far_future_booked_start_is_not_bookable(availability, clinic, store_with_far_booking, wednesday_morning):
    booked = datetime.fromisoformat(FAR_BOOKING)
    free = datetime.fromisoformat("2025-03-05T10:30:00-05:00")

    assert await availability.is_bookable(clinic, booked, now=wednesday_morning) is False
    assert await availability.is_bookable(clinic, free, now=wednesday_morning) is True


@pytest.mark.asyncio
async def test_off_grid_and_after_hours_starts_are_not_bookable(availability, clinic, wednesday_morning):
    off_grid = NEW_YORK.localize(datetime(2025, 1, 16, 3, 17))
    after_close = NEW_YORK.localize(datetime(2025, 1, 16, 17, 0))
    past = NEW_YORK.localize(datetime(2025, 1, 14, 10, 0))

    for start in (off_grid, after_close, past):
        assert await availability.is_bookable(clinic, start, now=wednesday_morning) is False


@pytest.mark.asyncio
async def test_malformed_date_raises_before_store_call(availability, clinic, mock_store):
    with pytest.raises(ValueError):
        await availability.slots_for_date(clinic, "05/03/2025")

    mock_store.list_booked_starts.assert_not_awaited()
