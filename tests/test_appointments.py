import uuid

from sqlalchemy import select

from clinicrm.modules.events.models import EventOutbox
from conftest import API, create_patient

G = f"{API}/gabinet"
EMPLOYEE = str(uuid.uuid4())


async def setup_booking(client):
    patient = await create_patient(client)
    r = await client.post(f"{G}/treatments", json={"name": "Massage", "duration": 60, "price": 200.0, "currency": "PLN"})
    assert r.status_code == 201, r.text
    return patient, r.json()


async def book(client, patient, treatment, **overrides):
    body = {
        "patient_id": patient["id"], "treatment_id": treatment["id"], "employee_id": EMPLOYEE,
        "date": "2025-05-12", "start_time": "09:00", "end_time": "10:00",
    }
    body.update(overrides)
    return await client.post(f"{G}/appointments", json=body)


async def test_booking_and_conflicts(client):
    patient, treatment = await setup_booking(client)
    r = await book(client, patient, treatment)
    assert r.status_code == 201
    appt = r.json()[0]
    assert appt["status"] == "scheduled"

    r = await book(client, patient, treatment, start_time="09:30", end_time="10:30")
    assert r.status_code == 409
    assert r.json()["detail"] == "Time slot conflict"

    # back-to-back is fine, and so is another employee
    r = await book(client, patient, treatment, start_time="10:00", end_time="11:00")
    assert r.status_code == 201
    r = await book(client, patient, treatment, employee_id=str(uuid.uuid4()))
    assert r.status_code == 201


async def test_booking_validation(client):
    patient, treatment = await setup_booking(client)
    r = await book(client, patient, treatment, start_time="10:00", end_time="09:00")
    assert r.status_code == 422
    assert r.json()["detail"] == "End time must be after start time"

    r = await book(client, patient, treatment, patient_id=str(uuid.uuid4()))
    assert r.status_code == 404
    assert r.json()["detail"] == "Patient not found"

    r = await book(client, patient, treatment, treatment_id=str(uuid.uuid4()))
    assert r.json()["detail"] == "Treatment not found"

    r = await book(client, patient, treatment, date="12/05/2025")
    assert r.status_code == 422


async def test_impossible_dates_are_rejected(client):
    patient, treatment = await setup_booking(client)
    r = await book(client, patient, treatment, date="2024-02-30", recurring_rule={"frequency": "weekly", "count": 2})
    assert r.status_code == 422
    r = await book(client, patient, treatment, date="2025-13-01")
    assert r.status_code == 422
    r = await book(client, patient, treatment, recurring_rule={"frequency": "weekly", "until": "2025-06-31"})
    assert r.status_code == 422

    r = await client.get(f"{G}/appointments", params={"patient_id": patient["id"]})
    assert r.json() == []


async def test_cancelled_slot_can_be_rebooked(client):
    patient, treatment = await setup_booking(client)
    appt = (await book(client, patient, treatment)).json()[0]
    r = await client.post(f"{G}/appointments/{appt['id']}/cancel", json={"reason": "sick"})
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert r.json()["cancellation_reason"] == "sick"
    assert r.json()["cancelled_at"] is not None

    r = await book(client, patient, treatment)
    assert r.status_code == 201


async def test_status_transitions(client, session):
    patient, treatment = await setup_booking(client)
    appt = (await book(client, patient, treatment)).json()[0]
    url = f"{G}/appointments/{appt['id']}/status"

    r = await client.post(url, json={"status": "completed"})
    assert r.status_code == 422
    assert r.json()["detail"] == "Cannot transition from scheduled to completed"

    for status in ("confirmed", "in_progress", "completed"):
        r = await client.post(url, json={"status": status})
        assert r.status_code == 200, r.text
        assert r.json()["status"] == status

    r = await client.post(url, json={"status": "cancelled"})
    assert r.json()["detail"] == "Cannot transition from completed to cancelled"
    r = await client.post(f"{G}/appointments/{appt['id']}/cancel", json={})
    assert r.status_code == 422
    assert r.json()["detail"] == "Cannot cancel a completed appointment"

    events = (await session.execute(select(EventOutbox))).scalars().all()
    assert [e.payload["new_status"] for e in events] == ["confirmed", "in_progress", "completed"]
    assert all(e.event_type == "APPOINTMENT_STATUS_CHANGED" for e in events)


async def test_recurring_booking(client):
    patient, treatment = await setup_booking(client)
    r = await book(client, patient, treatment, recurring_rule={"frequency": "weekly", "count": 3})
    assert r.status_code == 201
    created = r.json()
    assert [a["date"] for a in created] == ["2025-05-12", "2025-05-19", "2025-05-26"]
    assert [a["recurring_index"] for a in created] == [0, 1, 2]
    assert len({a["recurring_group_id"] for a in created}) == 1

    # a clash with any occurrence books nothing
    r = await book(client, patient, treatment, date="2025-05-05", recurring_rule={"frequency": "weekly", "count": 3})
    assert r.status_code == 409
    r = await client.get(f"{G}/appointments", params={"date_from": "2025-05-01", "date_to": "2025-05-11"})
    assert r.json() == []


async def test_calendar_month_counts(client):
    patient, treatment = await setup_booking(client)
    await book(client, patient, treatment, date="2025-05-01")
    await book(client, patient, treatment, date="2025-05-01", start_time="11:00", end_time="12:00")
    cancelled = (await book(client, patient, treatment, date="2025-05-02")).json()[0]
    await client.post(f"{G}/appointments/{cancelled['id']}/cancel", json={})

    r = await client.get(f"{G}/appointments/calendar", params={"year": 2025, "month": 5})
    assert r.status_code == 200
    weeks = r.json()["weeks"]
    # 1 May 2025 was a Thursday
    assert weeks[0][:3] == [None, None, None]
    assert weeks[0][3] == {"date": "2025-05-01", "appointments": 2}
    assert weeks[0][4] == {"date": "2025-05-02", "appointments": 0}
    assert len(weeks) == 5


async def test_list_filters(client):
    patient, treatment = await setup_booking(client)
    await book(client, patient, treatment, date="2025-05-12")
    await book(client, patient, treatment, date="2025-06-12")
    r = await client.get(f"{G}/appointments", params={"date_from": "2025-06-01"})
    assert [a["date"] for a in r.json()] == ["2025-06-12"]
    r = await client.get(f"{G}/appointments", params={"patient_id": patient["id"], "status": "scheduled"})
    assert len(r.json()) == 2

    r = await client.get(f"{G}/treatments")
    assert r.json()[0]["price"] == 200.0
