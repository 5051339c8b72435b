import threading
import time
from datetime import date
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from manzil.db import Base, make_engine, make_session_factory
from manzil.errors import Conflict, Forbidden, InvalidRange, NotFound, StoreError
from manzil.models import Listing, Reservation, User
from manzil.services.booking import BookingEngine, blocked_days_between, get_reservations, to_day


# ---------- DATE HANDLING ----------

def test_to_day_accepts_iso_datetime_strings():
    assert to_day("2025-06-10T00:00:00.000Z") == date(2025, 6, 10)
    assert to_day("2025-06-10") == date(2025, 6, 10)

def test_to_day_rejects_garbage():
    with pytest.raises(InvalidRange):
        to_day("next tuesday")

def test_blocked_days_are_inclusive():
    assert blocked_days_between(date(2025, 6, 10), date(2025, 6, 12)) == [
        date(2025, 6, 10), date(2025, 6, 11), date(2025, 6, 12),
    ]


# ---------- AVAILABILITY ----------

def test_empty_listing_is_available(db_session, make_listing):
    listing = make_listing()
    result = BookingEngine(db_session).check_availability(listing.id, "2025-06-10", "2025-06-13")
    assert result.available is True
    assert result.blocking_ranges == []

def test_availability_reports_blocking_ranges(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    listing = make_listing()
    engine = BookingEngine(db_session)
    engine.create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-13")

    result = engine.check_availability(listing.id, "2025-06-12", "2025-06-15")
    assert result.available is False
    assert result.blocking_ranges == [(date(2025, 6, 10), date(2025, 6, 13))]

    assert engine.check_availability(listing.id, "2025-06-14", "2025-06-16").available is True

def test_availability_unknown_listing(db_session):
    with pytest.raises(NotFound):
        BookingEngine(db_session).check_availability(999, "2025-06-10", "2025-06-13")

@pytest.mark.parametrize("start,end", [("2025-06-10", "2025-06-10"), ("2025-06-13", "2025-06-10")])
def test_invalid_range_fails_before_touching_the_store(start, end):
    db = MagicMock()
    engine = BookingEngine(db)
    with pytest.raises(InvalidRange):
        engine.check_availability(1, start, end)
    with pytest.raises(InvalidRange):
        engine.create_reservation(1, 1, start, end)
    assert db.method_calls == []


# ---------- RESERVATIONS ----------

def test_total_price_is_nights_times_nightly_price(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    listing = make_listing(price=250)
    reservation = BookingEngine(db_session).create_reservation(listing.id, guest.id, "2025-07-01", "2025-07-08")
    assert reservation.total_price == 7 * 250
    assert reservation.nights == 7

def test_closed_interval_rejects_shared_boundary_day(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    listing = make_listing()
    engine = BookingEngine(db_session, allow_same_day_turnover=False)
    engine.create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-13")
    with pytest.raises(Conflict):
        engine.create_reservation(listing.id, guest.id, "2025-06-13", "2025-06-16")
    with pytest.raises(Conflict):
        engine.create_reservation(listing.id, guest.id, "2025-06-07", "2025-06-10")
    assert db_session.query(Reservation).count() == 1

def test_same_day_turnover_allows_back_to_back_stays(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    listing = make_listing()
    engine = BookingEngine(db_session, allow_same_day_turnover=True)
    engine.create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-13")
    engine.create_reservation(listing.id, guest.id, "2025-06-13", "2025-06-16")
    with pytest.raises(Conflict):
        engine.create_reservation(listing.id, guest.id, "2025-06-12", "2025-06-14")
    assert db_session.query(Reservation).count() == 2

def test_reservations_on_other_listings_do_not_conflict(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    a = make_listing()
    b = make_listing(title="Second chalet")
    engine = BookingEngine(db_session)
    engine.create_reservation(a.id, guest.id, "2025-06-10", "2025-06-13")
    engine.create_reservation(b.id, guest.id, "2025-06-10", "2025-06-13")

def test_create_reservation_unknown_listing(db_session, make_user):
    guest = make_user(email="g@example.com")
    with pytest.raises(NotFound):
        BookingEngine(db_session).create_reservation(42, guest.id, "2025-06-10", "2025-06-13")

def test_store_failure_on_commit_is_reported(db_session, make_user, make_listing, monkeypatch):
    guest = make_user(email="g@example.com")
    listing = make_listing()

    def boom():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", boom)
    with pytest.raises(StoreError):
        BookingEngine(db_session).create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-13")
    monkeypatch.undo()
    assert db_session.query(Reservation).count() == 0

def test_blocked_dates_cover_every_reserved_day(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    listing = make_listing()
    engine = BookingEngine(db_session, allow_same_day_turnover=True)
    engine.create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-12")
    engine.create_reservation(listing.id, guest.id, "2025-06-12", "2025-06-13")
    assert engine.blocked_dates(listing.id) == [
        date(2025, 6, 10), date(2025, 6, 11), date(2025, 6, 12), date(2025, 6, 13),
    ]


# ---------- CANCELLATION ----------

def test_cancel_by_guest_and_host(db_session, make_user, make_listing):
    host = make_user()
    guest = make_user(email="g@example.com")
    listing = make_listing(owner=host)
    engine = BookingEngine(db_session)
    first = engine.create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-13")
    second = engine.create_reservation(listing.id, guest.id, "2025-07-10", "2025-07-13")

    engine.cancel_reservation(first.id, guest.id)
    engine.cancel_reservation(second.id, host.id)
    assert db_session.query(Reservation).count() == 0

def test_cancel_by_stranger_is_forbidden(db_session, make_user, make_listing):
    host = make_user()
    guest = make_user(email="g@example.com")
    stranger = make_user(email="s@example.com")
    listing = make_listing(owner=host)
    engine = BookingEngine(db_session)
    reservation = engine.create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-13")
    with pytest.raises(Forbidden):
        engine.cancel_reservation(reservation.id, stranger.id)
    with pytest.raises(NotFound):
        engine.cancel_reservation(reservation.id + 100, guest.id)

def test_cancelled_days_become_available_again(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    listing = make_listing()
    engine = BookingEngine(db_session)
    reservation = engine.create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-13")
    engine.cancel_reservation(reservation.id, guest.id)
    engine.create_reservation(listing.id, guest.id, "2025-06-11", "2025-06-12")

def test_get_reservations_for_guest_and_host(db_session, make_user, make_listing):
    host = make_user()
    guest = make_user(email="g@example.com")
    other = make_user(email="o@example.com")
    listing = make_listing(owner=host)
    engine = BookingEngine(db_session)
    engine.create_reservation(listing.id, guest.id, "2025-06-10", "2025-06-13")
    engine.create_reservation(listing.id, other.id, "2025-07-10", "2025-07-13")

    trips, total = get_reservations(db_session, user_id=guest.id)
    assert total == 1 and trips[0].user_id == guest.id

    incoming, total = get_reservations(db_session, author_id=host.id)
    assert total == 2
    # newest first
    assert incoming[0].user_id == other.id


# ---------- API ----------

def test_june_booking_scenario(client, make_user, make_listing, login):
    host = make_user()
    listing = make_listing(owner=host, price=1000)
    login()

    r = client.post("/api/reservations", json={
        "listing_id": listing.id,
        "start_date": "2025-06-10T00:00:00.000Z",
        "end_date": "2025-06-13T00:00:00.000Z",
    })
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["total_price"] == 3000
    assert body["start_date"] == "2025-06-10T00:00:00.000Z"
    assert body["end_date"] == "2025-06-13T00:00:00.000Z"

    r = client.post("/api/reservations", json={"listing_id": listing.id, "start_date": "2025-06-12", "end_date": "2025-06-15"})
    assert r.status_code == 409
    assert r.json()["detail"] == "Conflict: overlapping reservation exists"

    r = client.post("/api/reservations", json={"listing_id": listing.id, "start_date": "2025-06-13", "end_date": "2025-06-16"})
    assert r.status_code == 409

    r = client.get(f"/api/listings/{listing.id}/availability", params={"start_date": "2025-06-11", "end_date": "2025-06-12"})
    assert r.status_code == 200
    assert r.json() == {
        "available": False,
        "blocking_ranges": [{"start_date": "2025-06-10T00:00:00.000Z", "end_date": "2025-06-13T00:00:00.000Z"}],
    }

def test_api_client_total_price_is_ignored(client, make_listing, login):
    listing = make_listing(price=100)
    login()
    r = client.post("/api/reservations", json={
        "listing_id": listing.id, "start_date": "2025-06-10", "end_date": "2025-06-12", "total_price": 1,
    })
    assert r.status_code == 201
    assert r.json()["total_price"] == 200

def test_api_invalid_range_is_400(client, make_listing, login):
    listing = make_listing()
    login()
    r = client.post("/api/reservations", json={"listing_id": listing.id, "start_date": "2025-06-13", "end_date": "2025-06-10"})
    assert r.status_code == 400
    r = client.get(f"/api/listings/{listing.id}/availability", params={"start_date": "2025-06-13", "end_date": "2025-06-13"})
    assert r.status_code == 400

def test_api_reservation_requires_login(client, make_listing):
    listing = make_listing()
    r = client.post("/api/reservations", json={"listing_id": listing.id, "start_date": "2025-06-10", "end_date": "2025-06-13"})
    assert r.status_code == 401

def test_api_unknown_listing_is_404(client, login):
    login()
    r = client.post("/api/reservations", json={"listing_id": 999, "start_date": "2025-06-10", "end_date": "2025-06-13"})
    assert r.status_code == 404

def test_api_cancel_permissions(client, make_user, make_listing, login):
    host = make_user()
    listing = make_listing(owner=host)
    login()
    reservation_id = client.post("/api/reservations", json={
        "listing_id": listing.id, "start_date": "2025-06-10", "end_date": "2025-06-13",
    }).json()["id"]

    login(email="stranger@example.com", name="Stranger")
    assert client.delete(f"/api/reservations/{reservation_id}").status_code == 403

    login(email=host.email)
    assert client.delete(f"/api/reservations/{reservation_id}").status_code == 204
    assert client.delete(f"/api/reservations/{reservation_id}").status_code == 404

def test_api_list_reservations_is_scoped_to_self(client, make_user, make_listing, login):
    host = make_user()
    listing = make_listing(owner=host)
    guest = login()
    client.post("/api/reservations", json={"listing_id": listing.id, "start_date": "2025-06-10", "end_date": "2025-06-13"})

    r = client.get("/api/reservations", params={"user_id": guest["id"]})
    assert r.status_code == 200
    assert r.json()["total"] == 1
    assert r.json()["reservations"][0]["listing"]["id"] == listing.id

    assert client.get("/api/reservations").status_code == 400
    assert client.get("/api/reservations", params={"author_id": host.id}).status_code == 403

    login(email=host.email)
    r = client.get("/api/reservations", params={"author_id": host.id})
    assert r.status_code == 200
    assert r.json()["total"] == 1

def test_api_blocked_dates(client, make_listing, login):
    listing = make_listing()
    login()
    client.post("/api/reservations", json={"listing_id": listing.id, "start_date": "2025-06-10", "end_date": "2025-06-11"})
    r = client.get(f"/api/listings/{listing.id}/blocked-dates")
    assert r.status_code == 200
    assert r.json() == {"listing_id": listing.id, "dates": ["2025-06-10T00:00:00.000Z", "2025-06-11T00:00:00.000Z"]}

def test_disjoint_ranges_then_intersecting_range(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    listing = make_listing()
    engine = BookingEngine(db_session)
    a = ("2024-03-01", "2024-03-05")
    b = ("2024-03-10", "2024-03-12")
    assert engine.check_availability(listing.id, *a).available
    assert engine.check_availability(listing.id, *b).available
    engine.create_reservation(listing.id, guest.id, *a)
    engine.create_reservation(listing.id, guest.id, *b)

    assert not engine.check_availability(listing.id, "2024-03-04", "2024-03-07").available
    assert not engine.check_availability(listing.id, "2024-03-11", "2024-03-20").available
    assert engine.check_availability(listing.id, "2024-03-06", "2024-03-09").available

def test_early_june_scenario(db_session, make_user, make_listing):
    guest = make_user(email="g@example.com")
    listing = make_listing(price=1000)
    engine = BookingEngine(db_session, allow_same_day_turnover=False)
    assert engine.create_reservation(listing.id, guest.id, "2024-06-01", "2024-06-04").total_price == 3000
    with pytest.raises(Conflict):
        engine.create_reservation(listing.id, guest.id, "2024-06-03", "2024-06-05")
    with pytest.raises(Conflict):
        engine.create_reservation(listing.id, guest.id, "2024-06-04", "2024-06-06")


# ---------- CONCURRENCY ----------

def test_concurrent_overlapping_submissions_store_one_reservation(tmp_path, monkeypatch):
    engine = make_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    factory = make_session_factory(engine)

    with factory() as seed:
        guest = User(email="g@example.com", name="Guest")
        listing = Listing(
            title="Mountain chalet",
            description="A quiet chalet with a view over the valley.",
            category="جبال",
            location_value="SA",
            price=1000,
        )
        seed.add_all([guest, listing])
        seed.commit()
        guest_id, listing_id = guest.id, listing.id

    # Widen the window between the conflict check and the insert
    original_blocking = BookingEngine._blocking

    def slow_blocking(self, *args):
        found = original_blocking(self, *args)
        time.sleep(0.3)
        return found

    monkeypatch.setattr(BookingEngine, "_blocking", slow_blocking)

    start = threading.Barrier(2)
    results = []

    def submit():
        session = factory()
        try:
            start.wait()
            BookingEngine(session).create_reservation(listing_id, guest_id, "2024-06-01", "2024-06-04")
            results.append("ok")
        except Conflict:
            results.append("conflict")
        finally:
            session.close()

    threads = [threading.Thread(target=submit) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=15)

    with factory() as check:
        stored = check.query(Reservation).filter(Reservation.listing_id == listing_id).count()
    engine.dispose()

    assert sorted(results) == ["conflict", "ok"]
    assert stored == 1
