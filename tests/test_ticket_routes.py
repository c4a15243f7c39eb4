import base64
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from servicehub.dependencies import auth as auth_deps
from servicehub.dependencies import services as service_deps
from servicehub.directory import Actor, Role
from servicehub.main import create_app
from servicehub.notifications import DispatchReport, MessageJob, NotificationFailure, RecipientClass
from servicehub.tickets.errors import (
    DenialReason,
    PersistenceError,
    RemarkValidationError,
    TicketConflictError,
    TicketNotFoundError,
    TicketValidationError,
    TransitionDeniedError,
)
from servicehub.tickets.lifecycle import StatusChanged, TransitionResult
from servicehub.tickets.models import RemarkAttachment, TicketAuditEntry, TicketRemark
from servicehub.tickets.state import StatusCount, TicketStatus

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _result(ticket, from_status, action="status_changed", reports=()):
    event = StatusChanged(
        ticket_id=ticket.id,
        from_status=from_status,
        to_status=ticket.status,
        actor_id="admin-1",
        actor_role=Role.ADMIN,
        timestamp=NOW,
        ticket=ticket,
        action=action,
    )
    return TransitionResult(ticket=ticket, event=event, reports=list(reports))


@pytest.fixture
def route_client():
    app = create_app()
    service = AsyncMock()
    caller = {"actor": Actor("admin-1", Role.ADMIN, "Asha Admin")}

    async def override_service():
        return service

    app.dependency_overrides[service_deps.get_ticket_service] = override_service
    app.dependency_overrides[auth_deps.get_current_actor] = lambda: caller["actor"]

    client = TestClient(app)
    try:
        yield client, service, caller
    finally:
        app.dependency_overrides.clear()


def test_create_ticket_returns_created(route_client, ticket_factory):
    client, service, _ = route_client
    ticket = ticket_factory()
    service.create_ticket.return_value = _result(ticket, None, action="created")

    response = client.post(
        "/tickets",
        json={
            "title": "Laptop does not boot",
            "description": "Black screen after the logo",
            "customer_id": "cust-1",
            "priority": "high",
            "device": {"device_type": "LAPTOP", "device_brand": "Dell", "serial_number": "SN-1"},
            "technician_id": "",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["ticket"]["id"] == ticket.id
    assert body["from_status"] is None
    assert body["action"] == "created"
    draft = service.create_ticket.await_args.args[0]
    assert draft.technician_id is None
    assert draft.device.device_brand == "Dell"


def test_create_ticket_unknown_customer_is_bad_request(route_client):
    client, service, _ = route_client
    service.create_ticket.side_effect = TicketValidationError("Customer cust-404 not found")

    response = client.post("/tickets", json={"title": "x", "description": "y", "customer_id": "cust-404"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Customer cust-404 not found"


def test_list_tickets_passes_filters(route_client, ticket_factory):
    client, service, _ = route_client
    service.list_tickets.return_value = [ticket_factory(status=TicketStatus.ASSIGNED, technician_id="tech-1")]

    response = client.get("/tickets", params={"status": "assigned", "technician_id": "tech-1"})

    assert response.status_code == 200
    assert response.json()[0]["status"] == "assigned"
    kwargs = service.list_tickets.await_args.kwargs
    assert kwargs["status"] is TicketStatus.ASSIGNED
    assert kwargs["technician_id"] == "tech-1"
    assert kwargs["include_archived"] is False


def test_list_tickets_rejects_unknown_status(route_client):
    client, _, _ = route_client
    assert client.get("/tickets", params={"status": "hold"}).status_code == 422


def test_status_change_reports_notifications(route_client, ticket_factory):
    client, service, _ = route_client
    ticket = ticket_factory(status=TicketStatus.PICKUP, technician_id="tech-1")
    failed_job = MessageJob(RecipientClass.ADMIN, None, None, "pickup_scheduled")
    report = DispatchReport(
        ticket_id=ticket.id,
        failures=[NotificationFailure(job=failed_job, error="No phone number for admin recipient")],
    )
    service.change_status.return_value = _result(ticket, TicketStatus.ASSIGNED, reports=[report])

    response = client.post(f"/tickets/{ticket.id}/status", json={"status": "pickup"})

    assert response.status_code == 200
    body = response.json()
    assert body["from_status"] == "assigned"
    assert body["to_status"] == "pickup"
    assert body["notifications"]["delivered"] == 0
    assert body["notifications"]["failures"] == [
        {"recipient": "admin", "template": "pickup_scheduled", "error": "No phone number for admin recipient"}
    ]


@pytest.mark.parametrize(
    ("reason", "expected"),
    [
        (DenialReason.FORBIDDEN, 403),
        (DenialReason.NOT_FOUND, 404),
        (DenialReason.NO_OP_TRANSITION, 409),
        (DenialReason.PENDING_APPROVAL, 409),
        (DenialReason.TERMINAL_STATE, 409),
    ],
)
def test_denials_map_to_http_status(route_client, reason, expected):
    client, service, _ = route_client
    service.change_status.side_effect = TransitionDeniedError(reason, "nope")

    response = client.post("/tickets/t-1/status", json={"status": "done"})

    assert response.status_code == expected
    assert response.json()["detail"] == {"reason": reason.value, "message": "nope"}


def test_store_errors_map_to_conflict_and_unavailable(route_client):
    client, service, _ = route_client
    service.change_status.side_effect = TicketConflictError("modified concurrently")
    assert client.post("/tickets/t-1/status", json={"status": "done"}).status_code == 409

    service.change_status.side_effect = PersistenceError("db down")
    response = client.post("/tickets/t-1/status", json={"status": "done"})
    assert response.status_code == 503
    assert response.json()["detail"] == "Ticket store is unavailable"


def test_get_missing_ticket_is_not_found(route_client):
    client, service, _ = route_client
    service.get_ticket.side_effect = TicketNotFoundError("Ticket t-9 not found")
    assert client.get("/tickets/t-9").status_code == 404


def test_admin_only_routes_reject_technicians(route_client):
    client, service, caller = route_client
    caller["actor"] = Actor("tech-1", Role.TECHNICIAN)

    assert client.post("/tickets/t-1/assign", json={"technician_id": "tech-2"}).status_code == 403
    assert client.post("/tickets/t-1/approve").status_code == 403
    assert client.delete("/tickets/t-1").status_code == 403
    service.assign_technician.assert_not_awaited()
    service.approve.assert_not_awaited()


def test_approve_and_delete(route_client, ticket_factory):
    client, service, _ = route_client
    ticket = ticket_factory()
    service.approve.return_value = _result(ticket, TicketStatus.IN_QUEUE, action="approved")

    approved = client.post(f"/tickets/{ticket.id}/approve")
    assert approved.status_code == 200
    assert approved.json()["action"] == "approved"

    deleted = client.delete(f"/tickets/{ticket.id}")
    assert deleted.status_code == 204
    service.delete_ticket.assert_awaited_once()


def test_summary_and_transitions(route_client):
    client, service, _ = route_client
    service.status_summary.return_value = [StatusCount(TicketStatus.IN_QUEUE, "Generated", 3)]
    service.allowed_transitions.return_value = [TicketStatus.PICKUP, TicketStatus.ON_HOLD]

    summary = client.get("/tickets/summary")
    assert summary.json() == [{"status": "in_queue", "label": "Generated", "count": 3}]

    options = client.get("/tickets/t-1/transitions")
    assert options.json() == [
        {"status": "pickup", "label": "Pickup Schedule"},
        {"status": "on_hold", "label": "On Hold"},
    ]


def test_audit_log(route_client):
    client, service, _ = route_client
    service.get_audit_log.return_value = [
        TicketAuditEntry(
            id="a-1",
            ticket_id="t-1",
            action="created",
            actor="admin-1",
            from_status=None,
            to_status=TicketStatus.IN_QUEUE,
            created_at=NOW,
        )
    ]

    response = client.get("/tickets/t-1/audit")

    assert response.status_code == 200
    assert response.json()[0]["to_status"] == "in_queue"
    assert response.json()[0]["metadata"] == {}


def test_add_remark_with_attachment(route_client):
    client, service, _ = route_client
    attachment = RemarkAttachment(
        id="img-1",
        remark_id="r-1",
        ticket_id="t-1",
        name="board.png",
        path="t-1/abc.png",
        content_type="image/png",
        size=4,
        created_at=NOW,
    )
    service.add_remark.return_value = TicketRemark(
        id="r-1", ticket_id="t-1", author_id="admin-1", text="", created_at=NOW, attachments=[attachment]
    )

    response = client.post(
        "/tickets/t-1/remarks",
        json={
            "attachments": [
                {"name": "board.png", "content_type": "image/png", "content": base64.b64encode(b"\x89PNG").decode()}
            ]
        },
    )

    assert response.status_code == 201
    assert response.json()["attachments"][0]["path"] == "t-1/abc.png"
    uploads = service.add_remark.await_args.args[3]
    assert uploads[0].content == b"\x89PNG"


def test_add_remark_requires_content(route_client):
    client, service, _ = route_client
    response = client.post("/tickets/t-1/remarks", json={"text": "   "})
    assert response.status_code == 400
    service.add_remark.assert_not_awaited()

    service.add_remark.side_effect = RemarkValidationError("Attachment 'a.png' exceeds 25 MB")
    oversized = client.post("/tickets/t-1/remarks", json={"text": "see photo"})
    assert oversized.status_code == 400
