"""HTTP-level tests: auth, role checks and domain error mapping."""

import uuid
from datetime import datetime

import pytest

from app.models.quote import QuoteState


@pytest.mark.asyncio
async def test_health_check(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client):
    resp = await client.get("/api/v1/quotes/")
    assert resp.status_code in (401, 403)


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(client):
    resp = await client.get("/api/v1/quotes/", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_quote_with_upload(client, customer_headers, admin, service_type, file_store, notifier):
    resp = await client.post(
        "/api/v1/quotes/",
        headers=customer_headers,
        data={"type_of_service_id": str(service_type.id), "description": "Tinte cobrizo"},
        files={"file": ("cabello.jpg", b"jpeg bytes", "image/jpeg")},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["state"] == "pending"
    assert body["price"] == 1500.0
    assert len(file_store.files) == 1
    assert len(notifier.sent) == 1

    detail = await client.get(f"/api/v1/quotes/{body['id']}", headers=customer_headers)
    assert detail.status_code == 200
    assert len(detail.json()["images"]) == 1


@pytest.mark.asyncio
async def test_unknown_quote_is_404(client, customer_headers):
    resp = await client.get(f"/api/v1/quotes/{uuid.uuid4()}", headers=customer_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_state_change_requires_admin(client, customer_headers, make_quote):
    quote = await make_quote(QuoteState.PENDING)

    resp = await client.patch(
        f"/api/v1/quotes/{quote.id}/state", headers=customer_headers, json={"state": "approved"}
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_state_change_error_mapping(client, admin_headers, make_quote):
    quote = await make_quote(QuoteState.PENDING)
    url = f"/api/v1/quotes/{quote.id}/state"

    assert (await client.patch(url, headers=admin_headers, json={"state": "booked"})).status_code == 403
    assert (await client.patch(url, headers=admin_headers, json={"state": "approved"})).status_code == 200

    noop = await client.patch(url, headers=admin_headers, json={"state": "approved"})
    assert noop.status_code == 400
    assert noop.json()["detail"] == "no data to update"


@pytest.mark.asyncio
async def test_client_cannot_read_someone_elses_quote(client, admin, admin_headers, customer_headers, make_quote):
    admins_quote = await make_quote(QuoteState.PENDING, client=admin)
    own_quote = await make_quote(QuoteState.PENDING)

    assert (await client.get(f"/api/v1/quotes/{admins_quote.id}", headers=customer_headers)).status_code == 403
    assert (await client.get(f"/api/v1/quotes/{own_quote.id}", headers=customer_headers)).status_code == 200
    # Admins can read any quote
    assert (await client.get(f"/api/v1/quotes/{own_quote.id}", headers=admin_headers)).status_code == 200


@pytest.mark.asyncio
async def test_booking_flow_over_http(client, admin_headers, customer_headers, make_quote):
    slot = await client.post(
        "/api/v1/availability-slots/",
        headers=admin_headers,
        json={"start_time": "2025-06-10T09:00:00", "end_time": "2025-06-10T10:00:00"},
    )
    assert slot.status_code == 201
    slot_id = slot.json()["id"]

    pending_quote = await make_quote(QuoteState.PENDING)
    forbidden = await client.post(
        "/api/v1/appointments/",
        headers=customer_headers,
        json={"slot_id": slot_id, "quote_id": str(pending_quote.id)},
    )
    assert forbidden.status_code == 403

    proof_quote = await make_quote(QuoteState.REQUIRES_PROOF)
    booked = await client.post(
        "/api/v1/appointments/",
        headers=customer_headers,
        json={"slot_id": slot_id, "quote_id": str(proof_quote.id)},
    )
    assert booked.status_code == 201
    assert booked.json()["status"] == "booked"

    slot_after = await client.get(f"/api/v1/availability-slots/{slot_id}", headers=customer_headers)
    assert slot_after.json()["is_booked"] is True

    free = await client.get(
        "/api/v1/availability-slots/", headers=customer_headers, params={"month": "2025-06", "state": "free"}
    )
    assert free.json() == []

    second = await client.post(
        "/api/v1/appointments/",
        headers=customer_headers,
        json={"slot_id": slot_id, "quote_id": str((await make_quote(QuoteState.APPROVED)).id)},
    )
    assert second.status_code == 409

    delete_booked = await client.delete(f"/api/v1/availability-slots/{slot_id}", headers=admin_headers)
    assert delete_booked.status_code == 409


@pytest.mark.asyncio
async def test_slot_with_end_before_start_is_rejected(client, admin_headers):
    resp = await client.post(
        "/api/v1/availability-slots/",
        headers=admin_headers,
        json={"start_time": "2025-06-10T10:00:00", "end_time": "2025-06-10T09:00:00"},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_slot_times_with_offset_are_stored_as_utc(client, admin_headers):
    resp = await client.post(
        "/api/v1/availability-slots/",
        headers=admin_headers,
        json={"start_time": "2025-06-10T09:00:00-06:00", "end_time": "2025-06-10T10:00:00-06:00"},
    )
    assert resp.status_code == 201
    assert datetime.fromisoformat(resp.json()["start_time"]) == datetime(2025, 6, 10, 15, 0)


@pytest.mark.asyncio
async def test_payment_proof_upload_and_review(client, admin_headers, customer_headers, make_quote):
    quote = await make_quote(QuoteState.REQUIRES_PROOF)

    created = await client.post(
        "/api/v1/payment-proofs/",
        headers=customer_headers,
        data={"quote_id": str(quote.id)},
        files={"file": ("recibo.pdf", b"%PDF", "application/pdf")},
    )
    assert created.status_code == 201
    proof_id = created.json()["id"]

    duplicate = await client.post(
        "/api/v1/payment-proofs/",
        headers=customer_headers,
        data={"quote_id": str(quote.id)},
        files={"file": ("recibo.pdf", b"%PDF", "application/pdf")},
    )
    assert duplicate.status_code == 409

    download = await client.get(f"/api/v1/payment-proofs/{proof_id}/file", headers=admin_headers)
    assert download.status_code == 200
    assert download.content == b"%PDF"

    reviewed = await client.patch(
        f"/api/v1/payment-proofs/{proof_id}", headers=admin_headers, json={"is_reviewed": True}
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["is_reviewed"] is True


@pytest.mark.asyncio
async def test_upload_failure_is_500_without_details(client, customer_headers, service_type, file_store):
    file_store.fail_save = True

    resp = await client.post(
        "/api/v1/quotes/",
        headers=customer_headers,
        data={"type_of_service_id": str(service_type.id), "description": "Tinte"},
        files={"file": ("cabello.jpg", b"jpeg", "image/jpeg")},
    )

    assert resp.status_code == 500
    assert resp.json()["detail"] == "internal error"


@pytest.mark.asyncio
async def test_client_cannot_touch_someone_elses_quote_images_or_proof(
    client, admin, customer_headers, quote_service, make_quote, file_store
):
    admins_quote = await make_quote(QuoteState.REQUIRES_PROOF, client=admin)
    image = await quote_service.add_quote_image(admins_quote.id, b"bytes", "foto.jpg")
    stored = len(file_store.files)

    assert (await client.get(f"/api/v1/quotes/images/{image.id}", headers=customer_headers)).status_code == 403
    assert (await client.get(f"/api/v1/quotes/{admins_quote.id}/images", headers=customer_headers)).status_code == 403

    upload = await client.post(
        f"/api/v1/quotes/{admins_quote.id}/images",
        headers=customer_headers,
        files={"file": ("foto.jpg", b"more", "image/jpeg")},
    )
    assert upload.status_code == 403

    proof = await client.post(
        "/api/v1/payment-proofs/",
        headers=customer_headers,
        data={"quote_id": str(admins_quote.id)},
        files={"file": ("recibo.pdf", b"%PDF", "application/pdf")},
    )
    assert proof.status_code == 403
    assert len(file_store.files) == stored


@pytest.mark.asyncio
async def test_client_cannot_book_someone_elses_quote(client, admin, admin_headers, customer_headers, make_quote):
    slot = await client.post(
        "/api/v1/availability-slots/",
        headers=admin_headers,
        json={"start_time": "2025-06-10T09:00:00", "end_time": "2025-06-10T10:00:00"},
    )
    admins_quote = await make_quote(QuoteState.REQUIRES_PROOF, client=admin)

    resp = await client.post(
        "/api/v1/appointments/",
        headers=customer_headers,
        json={"slot_id": slot.json()["id"], "quote_id": str(admins_quote.id)},
    )

    assert resp.status_code == 403
    slot_after = await client.get(f"/api/v1/availability-slots/{slot.json()['id']}", headers=customer_headers)
    assert slot_after.json()["is_booked"] is False


@pytest.mark.asyncio
async def test_releasing_a_held_slot_is_409(client, admin_headers, customer_headers, make_quote):
    slot = await client.post(
        "/api/v1/availability-slots/",
        headers=admin_headers,
        json={"start_time": "2025-06-10T09:00:00", "end_time": "2025-06-10T10:00:00"},
    )
    slot_id = slot.json()["id"]
    booked = await client.post(
        "/api/v1/appointments/",
        headers=customer_headers,
        json={"slot_id": slot_id, "quote_id": str((await make_quote(QuoteState.REQUIRES_PROOF)).id)},
    )
    assert booked.status_code == 201

    resp = await client.post(f"/api/v1/availability-slots/{slot_id}/release", headers=admin_headers)
    assert resp.status_code == 409
