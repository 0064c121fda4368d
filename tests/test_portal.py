import uuid
from datetime import timedelta

from sqlalchemy import select, update

from clinicrm.core.base import utcnow
from clinicrm.modules.events.models import EventOutbox
from clinicrm.modules.events.relay import relay_once
from clinicrm.modules.notifications.service import NotificationsService
from clinicrm.modules.portal.hashing import hash_secret, secrets_match
from clinicrm.modules.portal.models import PortalSession
from clinicrm.modules.portal.repository import PortalSessionRepository
from clinicrm.platform.adapters.bus_noop import NoopEventBus
from conftest import API, ORG_ID, create_patient

PORTAL = f"{API}/portal"
EMAIL = "anna@example.com"


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


async def request_otp(client, email=EMAIL):
    r = await client.post(f"{PORTAL}/otp", json={"email": email})
    assert r.status_code == 200, r.text
    return r.json()


async def login(client, email=EMAIL):
    otp = (await request_otp(client, email))["dev_otp"]
    r = await client.post(f"{PORTAL}/verify", json={"email": email, "otp": otp})
    assert r.status_code == 200, r.text
    return r.json()


async def test_unknown_email_still_reports_success(client, session):
    body = await request_otp(client, "nobody@example.com")
    assert body == {"success": True, "dev_otp": None}
    assert (await session.execute(select(PortalSession))).scalars().all() == []


async def test_otp_is_stored_hashed_and_sent(client, session):
    patient = await create_patient(client)
    body = await request_otp(client)
    otp = body["dev_otp"]
    assert len(otp) == 6 and otp.isdigit()

    ps = (await session.execute(select(PortalSession))).scalar_one()
    assert str(ps.patient_id) == patient["id"]
    assert ps.otp_hash != otp
    assert secrets_match(otp, ps.otp_hash)
    assert ps.is_active is False

    [msg] = await NotificationsService(session).list_for_recipient(ORG_ID, EMAIL)
    assert msg.to == EMAIL
    assert otp in msg.body
    assert otp not in str(msg.meta)


async def test_reissuing_otp_reuses_the_session_row(client, session):
    await create_patient(client)
    await request_otp(client)
    await request_otp(client)
    rows = (await session.execute(select(PortalSession))).scalars().all()
    assert len(rows) == 1


async def test_verify_errors(client, session):
    r = await client.post(f"{PORTAL}/verify", json={"email": EMAIL, "otp": "123456"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"

    await create_patient(client)
    r = await client.post(f"{PORTAL}/verify", json={"email": EMAIL, "otp": "123456"})
    assert r.status_code == 400
    assert r.json()["detail"] == "No pending OTP"

    otp = (await request_otp(client))["dev_otp"]
    wrong = "000000" if otp != "000000" else "111111"
    r = await client.post(f"{PORTAL}/verify", json={"email": EMAIL, "otp": wrong})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid OTP"

    await session.execute(update(PortalSession).values(otp_expires_at=utcnow() - timedelta(minutes=1)))
    await session.commit()
    r = await client.post(f"{PORTAL}/verify", json={"email": EMAIL, "otp": otp})
    assert r.status_code == 401
    assert r.json()["detail"] == "OTP expired"


async def test_login_issues_token_and_clears_otp(client, session):
    patient = await create_patient(client)
    body = await login(client)
    assert body["patient_id"] == patient["id"]
    assert body["patient_name"] == "Anna Nowak"
    token = body["token"]

    ps = (await session.execute(select(PortalSession))).scalar_one()
    assert ps.otp_hash is None
    assert ps.is_active is True
    assert ps.token_hash == hash_secret(token)
    assert ps.token_hash != token

    # the OTP cannot be used twice
    r = await client.post(f"{PORTAL}/verify", json={"email": EMAIL, "otp": "123456"})
    assert r.json()["detail"] == "No pending OTP"

    r = await client.get(f"{PORTAL}/session", headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["patient"]["email"] == EMAIL
    assert r.json()["last_accessed_at"] is not None

    events = (await session.execute(select(EventOutbox))).scalars().all()
    assert [e.event_type for e in events] == ["PORTAL_SESSION_ACTIVATED"]


async def test_invalid_or_expired_session(client, session):
    await create_patient(client)
    token = (await login(client))["token"]

    r = await client.get(f"{PORTAL}/me", headers=bearer("not-a-token"))
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired session"
    r = await client.get(f"{PORTAL}/me")
    assert r.status_code == 401

    await session.execute(update(PortalSession).values(expires_at=utcnow() - timedelta(seconds=1)))
    await session.commit()
    r = await client.get(f"{PORTAL}/me", headers=bearer(token))
    assert r.status_code == 401
    r = await client.get(f"{PORTAL}/session", headers=bearer(token))
    assert r.status_code == 401


async def test_logout_and_new_otp_invalidate_token(client):
    await create_patient(client)
    token = (await login(client))["token"]
    r = await client.post(f"{PORTAL}/logout", headers=bearer(token))
    assert r.json() == {"success": True}
    r = await client.get(f"{PORTAL}/me", headers=bearer(token))
    assert r.status_code == 401

    token = (await login(client))["token"]
    await request_otp(client)
    r = await client.get(f"{PORTAL}/me", headers=bearer(token))
    assert r.status_code == 401


async def test_profile_read_and_update(client):
    await create_patient(client, medical_notes="internal")
    token = (await login(client))["token"]

    r = await client.get(f"{PORTAL}/me", headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["first_name"] == "Anna"
    assert "medical_notes" not in r.json()

    r = await client.patch(f"{PORTAL}/me", headers=bearer(token), json={
        "phone": "+48 500 100 200",
        "address": {"city": "Krakow"},
        "emergency_contact_name": "Piotr",
    })
    assert r.status_code == 200
    assert r.json()["phone"] == "+48 500 100 200"
    assert r.json()["address"]["city"] == "Krakow"
    assert r.json()["emergency_contact_name"] == "Piotr"


async def test_my_appointments_newest_first(client):
    patient = await create_patient(client)
    treatment = (await client.post(f"{API}/gabinet/treatments", json={"name": "Cleaning", "duration": 30, "price": 150})).json()
    employee = str(uuid.uuid4())
    for day in ("2025-01-10", "2025-03-05", "2025-02-01"):
        r = await client.post(f"{API}/gabinet/appointments", json={
            "patient_id": patient["id"], "treatment_id": treatment["id"], "employee_id": employee,
            "date": day, "start_time": "10:00", "end_time": "10:30", "internal_notes": "staff only",
        })
        assert r.status_code == 201, r.text

    token = (await login(client))["token"]
    r = await client.get(f"{PORTAL}/me/appointments", headers=bearer(token))
    assert r.status_code == 200
    body = r.json()
    assert [a["date"] for a in body] == ["2025-03-05", "2025-02-01", "2025-01-10"]
    assert body[0]["treatment_name"] == "Cleaning"
    assert "internal_notes" not in body[0]


async def test_document_signing(client, session):
    patient = await create_patient(client)
    other = await create_patient(client, first_name="Jan", email="jan@example.com")

    async def new_doc(patient_id, request_signature=True):
        r = await client.post(f"{API}/gabinet/documents", json={
            "patient_id": patient_id, "title": "Consent", "type": "consent",
            "content": "I agree.", "request_signature": request_signature,
        })
        assert r.status_code == 201, r.text
        return r.json()

    pending = await new_doc(patient["id"])
    draft = await new_doc(patient["id"], request_signature=False)
    foreign = await new_doc(other["id"])
    token = (await login(client))["token"]

    r = await client.get(f"{PORTAL}/me/documents", headers=bearer(token))
    assert {d["id"] for d in r.json()} == {pending["id"], draft["id"]}

    sign = f"{PORTAL}/me/documents/{{}}/sign"
    r = await client.post(sign.format(pending["id"]), headers=bearer(token), json={"signature_data": "data:image/png;base64,AAA"})
    assert r.status_code == 200
    assert r.json()["status"] == "signed"
    assert r.json()["signed_at"] is not None

    r = await client.post(sign.format(pending["id"]), headers=bearer(token), json={"signature_data": "x"})
    assert r.status_code == 422
    assert r.json()["detail"] == "Document is not pending signature"

    r = await client.post(sign.format(draft["id"]), headers=bearer(token), json={"signature_data": "x"})
    assert r.json()["detail"] == "Document is not pending signature"

    r = await client.post(sign.format(foreign["id"]), headers=bearer(token), json={"signature_data": "x"})
    assert r.status_code == 404
    assert r.json()["detail"] == "Document not found"

    r = await client.get(f"{API}/gabinet/documents/{pending['id']}")
    assert r.json()["signed_by_patient"] is True

    kinds = [e.event_type for e in (await session.execute(select(EventOutbox))).scalars().all()]
    assert "DOCUMENT_SIGNED" in kinds


async def test_deactivated_patient_loses_access(client):
    patient = await create_patient(client)
    token = (await login(client))["token"]
    await client.delete(f"{API}/gabinet/patients/{patient['id']}")

    r = await client.get(f"{PORTAL}/me", headers=bearer(token))
    assert r.status_code == 401
    body = await request_otp(client)
    assert body["dev_otp"] is None


async def test_store_otp_recovers_from_concurrent_insert(client, session_factory):
    patient = await create_patient(client)
    patient_id = uuid.UUID(patient["id"])
    expires = utcnow() + timedelta(minutes=10)

    async with session_factory() as s:
        await PortalSessionRepository(s).store_otp(ORG_ID, patient_id, hash_secret("111111"), expires)
        await s.commit()

    async with session_factory() as s:
        repo = PortalSessionRepository(s)
        real_get = repo.get_by_patient
        calls = []

        async def stale_get(pid):
            # the first lookup misses the row, as if it had been inserted meanwhile
            calls.append(pid)
            return None if len(calls) == 1 else await real_get(pid)

        repo.get_by_patient = stale_get
        obj = await repo.store_otp(ORG_ID, patient_id, hash_secret("222222"), expires)
        await s.commit()
        assert len(calls) == 2
        assert secrets_match("222222", obj.otp_hash)

    async with session_factory() as s:
        rows = (await s.execute(select(PortalSession))).scalars().all()
        assert len(rows) == 1


async def test_relay_publishes_portal_events(client, session):
    await create_patient(client)
    await login(client)

    bus = NoopEventBus()
    assert await relay_once(session, bus) == 1
    topic, key, value = bus.published[0]
    assert topic == "clinicrm.events"
    assert value["event_type"] == "PORTAL_SESSION_ACTIVATED"
    assert value["subject"]["type"] == "gabinet_patient"

    ev = (await session.execute(select(EventOutbox))).scalar_one()
    assert ev.status == "sent"
    assert await relay_once(session, bus) == 0
