"""
Endpoint tests for /offers — public slot queries and host window management.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

from .factories import (
    MONDAY,
    OFFER_ID,
    OTHER_USER_ID,
    booked,
    make_host,
    offer_obj,
    window_obj,
    window_payload,
)


def _active_offer(stores, windows=None, bookings=None):
    stores.availability.get_active_offer = AsyncMock(return_value=offer_obj())
    stores.availability.list_windows = AsyncMock(
        return_value=windows if windows is not None else [window_obj()]
    )
    stores.availability.list_active_bookings = AsyncMock(return_value=bookings or [])


# ---------------------------------------------------------------------------
# GET /offers/{id}/slots
# ---------------------------------------------------------------------------


class TestDaySlots:
    def test_lists_slots_with_capacity(self, guest_client, stores):
        _active_offer(stores, bookings=[booked("11:00")])
        resp = guest_client.get(f"/offers/{OFFER_ID}/slots", params={"date": "2024-01-01"})
        assert resp.status_code == 200
        data = resp.json()
        assert [s["startTime"] for s in data] == ["10:00", "11:00", "12:00", "13:00"]
        assert data[1] == {
            "startTime": "11:00",
            "endTime": "12:00",
            "available": False,
            "capacityLeft": 0,
        }

    def test_weekday_lookup(self, guest_client, stores):
        _active_offer(stores, windows=[])
        resp = guest_client.get(f"/offers/{OFFER_ID}/slots", params={"date": "2024-01-07"})
        assert resp.json() == []
        _, kwargs = stores.availability.list_windows.call_args
        assert kwargs["weekday"] == 6

    def test_cache_hit_skips_store(self, guest_client, stores, slots_cache):
        cached = [{"startTime": "10:00", "endTime": "11:00", "available": True, "capacityLeft": 1}]
        slots_cache.get.return_value = cached
        _active_offer(stores)
        resp = guest_client.get(f"/offers/{OFFER_ID}/slots", params={"date": "2024-01-01"})
        assert resp.json() == cached
        stores.availability.list_windows.assert_not_awaited()

    def test_cache_filled_on_miss(self, guest_client, stores, slots_cache):
        _active_offer(stores)
        guest_client.get(f"/offers/{OFFER_ID}/slots", params={"date": "2024-01-01"})
        offer_id, day, slots = slots_cache.set.call_args[0]
        assert (offer_id, day) == (OFFER_ID, MONDAY)
        assert len(slots) == 4

    def test_bad_date_returns_400(self, guest_client):
        resp = guest_client.get(f"/offers/{OFFER_ID}/slots", params={"date": "2024-02-30"})
        assert resp.status_code == 400

    def test_missing_date_returns_422(self, guest_client):
        assert guest_client.get(f"/offers/{OFFER_ID}/slots").status_code == 422

    def test_inactive_offer_returns_404(self, guest_client, stores):
        stores.availability.get_active_offer = AsyncMock(return_value=None)
        resp = guest_client.get(f"/offers/{OFFER_ID}/slots", params={"date": "2024-01-01"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Offer not found"


# ---------------------------------------------------------------------------
# GET /offers/{id}/availability and /next-slot
# ---------------------------------------------------------------------------


class TestRangeQueries:
    def test_availability_range(self, guest_client, stores):
        _active_offer(stores)
        resp = guest_client.get(
            f"/offers/{OFFER_ID}/availability",
            params={"startDate": "2024-01-01", "endDate": "2024-01-03"},
        )
        assert resp.status_code == 200
        days = resp.json()["days"]
        assert [d["date"] for d in days] == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert days[0]["totalSlots"] == 4
        assert days[1]["hasAvailability"] is False

    def test_reversed_range_returns_400(self, guest_client):
        resp = guest_client.get(
            f"/offers/{OFFER_ID}/availability",
            params={"startDate": "2024-01-05", "endDate": "2024-01-01"},
        )
        assert resp.status_code == 400

    def test_range_too_long_returns_400(self, guest_client):
        resp = guest_client.get(
            f"/offers/{OFFER_ID}/availability",
            params={"startDate": "2024-01-01", "endDate": "2024-06-01"},
        )
        assert resp.status_code == 400
        assert "Maximum" in resp.json()["detail"]

    def test_next_slot(self, guest_client, stores):
        _active_offer(stores, bookings=[booked("10:00")])
        resp = guest_client.get(
            f"/offers/{OFFER_ID}/next-slot",
            params={"date_start": "2024-01-01", "date_end": "2024-01-07"},
        )
        assert resp.status_code == 200
        assert resp.json() == {"date": "2024-01-01", "startTime": "11:00"}

    def test_next_slot_none(self, guest_client, stores):
        _active_offer(stores, windows=[])
        resp = guest_client.get(
            f"/offers/{OFFER_ID}/next-slot",
            params={"date_start": "2024-01-01", "date_end": "2024-01-07"},
        )
        assert resp.status_code == 200
        assert resp.json() is None


# ---------------------------------------------------------------------------
# /offers/{id}/windows
# ---------------------------------------------------------------------------


class TestWindows:
    def _owned(self, stores):
        stores.availability.get_offer = AsyncMock(return_value=offer_obj())

    def test_list_sorted_by_weekday_then_start(self, host_client, stores):
        self._owned(stores)
        stores.availability.list_windows = AsyncMock(
            return_value=[
                window_obj(id=1, weekday=3),
                window_obj(id=2, weekday=0, start_time="15:00", end_time="16:00"),
                window_obj(id=3, weekday=0),
            ]
        )
        resp = host_client.get(f"/offers/{OFFER_ID}/windows")
        assert resp.status_code == 200
        assert [w["id"] for w in resp.json()] == [3, 2, 1]

    def test_add_window(self, host_client, stores, slots_cache):
        self._owned(stores)
        stores.availability.add_window = AsyncMock(return_value=window_obj(id=7))
        resp = host_client.post(f"/offers/{OFFER_ID}/windows", json=window_payload())
        assert resp.status_code == 201
        assert resp.json()["id"] == 7
        slots_cache.invalidate.assert_awaited_once_with(OFFER_ID)

    def test_add_window_normalizes_time(self, host_client, stores):
        self._owned(stores)
        stores.availability.add_window = AsyncMock(return_value=window_obj())
        host_client.post(f"/offers/{OFFER_ID}/windows", json=window_payload(start_time="9:00"))
        payload = stores.availability.add_window.call_args[0][1]
        assert payload.start_time == "09:00"

    def test_start_after_end_returns_422(self, host_client, stores):
        self._owned(stores)
        resp = host_client.post(
            f"/offers/{OFFER_ID}/windows",
            json=window_payload(start_time="14:00", end_time="10:00"),
        )
        assert resp.status_code == 422

    def test_weekday_out_of_range_returns_422(self, host_client, stores):
        self._owned(stores)
        resp = host_client.post(f"/offers/{OFFER_ID}/windows", json=window_payload(weekday=7))
        assert resp.status_code == 422

    def test_zero_capacity_returns_422(self, host_client, stores):
        self._owned(stores)
        resp = host_client.post(
            f"/offers/{OFFER_ID}/windows", json=window_payload(max_bookings_per_slot=0)
        )
        assert resp.status_code == 422

    def test_replace_windows(self, host_client, stores, slots_cache):
        self._owned(stores)
        stores.availability.replace_windows = AsyncMock(
            return_value=[window_obj(id=4), window_obj(id=5, weekday=2)]
        )
        resp = host_client.put(
            f"/offers/{OFFER_ID}/windows",
            json=[window_payload(), window_payload(weekday=2)],
        )
        assert resp.status_code == 200
        assert len(resp.json()) == 2
        slots_cache.invalidate.assert_awaited_once_with(OFFER_ID)

    def test_delete_windows(self, host_client, stores):
        self._owned(stores)
        stores.availability.delete_windows = AsyncMock(return_value=2)
        assert host_client.delete(f"/offers/{OFFER_ID}/windows").status_code == 204

    def test_other_host_forbidden(self, client_factory, stores):
        self._owned(stores)
        stores.availability.add_window = AsyncMock()
        client = client_factory(make_host(user_id=OTHER_USER_ID))
        resp = client.post(f"/offers/{OFFER_ID}/windows", json=window_payload())
        assert resp.status_code == 403
        stores.availability.add_window.assert_not_awaited()

    def test_admin_may_edit_any_offer(self, admin_client, stores):
        self._owned(stores)
        stores.availability.add_window = AsyncMock(return_value=window_obj())
        resp = admin_client.post(f"/offers/{OFFER_ID}/windows", json=window_payload())
        assert resp.status_code == 201

    def test_unknown_offer_returns_404(self, host_client, stores):
        stores.availability.get_offer = AsyncMock(return_value=None)
        assert host_client.get(f"/offers/{OFFER_ID}/windows").status_code == 404
