from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from servicehub.assistant import ChatAssistantError
from servicehub.dependencies import auth as auth_deps
from servicehub.dependencies import services as service_deps
from servicehub.directory import Actor, Customer, DuplicateCustomerError, Profile, Role
from servicehub.main import create_app
from servicehub.notifications import Notification, NotificationNotFoundError
from servicehub.templates import TemplatePreview, TemplateRecipient, WhatsAppTemplate
from servicehub.tickets.state import TicketStatus

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _template(**overrides) -> WhatsAppTemplate:
    values = dict(
        id="tpl-1",
        name="Query Received",
        subject="Your Query Received!",
        message="Dear {Customer Name}",
        recipient=TemplateRecipient.CLIENT,
        status=TicketStatus.IN_QUEUE,
        is_active=True,
        created_at=NOW,
        updated_at=NOW,
        variables=["{Customer Name}"],
    )
    values.update(overrides)
    return WhatsAppTemplate(**values)


@pytest.fixture
def api():
    app = create_app()
    inbox = AsyncMock()
    templates = AsyncMock()
    assistant = AsyncMock()
    caller = {"actor": Actor("admin-1", Role.ADMIN, "Asha Admin")}

    app.dependency_overrides[service_deps.get_notification_inbox] = lambda: inbox
    app.dependency_overrides[service_deps.get_template_service] = lambda: templates
    app.dependency_overrides[service_deps.get_chat_assistant] = lambda: assistant
    app.dependency_overrides[auth_deps.get_current_actor] = lambda: caller["actor"]

    client = TestClient(app)
    try:
        yield client, inbox, templates, assistant, caller
    finally:
        app.dependency_overrides.clear()


def test_ping_and_readiness_without_database():
    client = TestClient(create_app())
    assert client.get("/ping").json() == {"status": "ok"}
    assert client.get("/ping/ready").status_code == 503


def test_secure_ping_unavailable_without_directory():
    client = TestClient(create_app())
    response = client.get("/ping/secure")
    assert response.status_code == 503
    assert response.json()["detail"] == "Directory is not available"


def test_secure_ping_reports_actor(api):
    client, *_ = api
    assert client.get("/ping/secure").json() == {"status": "ok", "user": "admin-1", "role": "admin"}


def test_ticket_routes_unavailable_without_service(api):
    client, *_ = api
    response = client.get("/tickets")
    assert response.status_code == 503
    assert response.json()["detail"] == "Ticket service is not available"


def test_statuses_are_listed_in_order():
    client = TestClient(create_app())
    body = client.get("/statuses").json()
    assert len(body) == 15
    assert body[0] == {
        "status": "in_queue",
        "label": "Generated",
        "color": "bg-blue-500 text-white",
        "order": 0,
        "terminal": False,
    }
    assert [row["status"] for row in body if row["terminal"]] == ["complete", "rejected"]


def test_notifications_list_and_mark_read(api):
    client, inbox, *_ = api
    notification = Notification(
        id="n-1", user_id="admin-1", title="New Ticket Generated", message="m", created_at=NOW, ticket_id="t-1"
    )
    inbox.list_for.return_value = [notification]
    inbox.mark_read.return_value = Notification(
        id="n-1", user_id="admin-1", title="New Ticket Generated", message="m", created_at=NOW, is_read=True
    )

    listed = client.get("/notifications", params={"unread": "true"})
    assert listed.json()[0]["ticket_id"] == "t-1"
    inbox.list_for.assert_awaited_once_with("admin-1", unread_only=True)

    marked = client.post("/notifications/n-1/read")
    assert marked.json()["is_read"] is True

    inbox.mark_read.side_effect = NotificationNotFoundError("Notification n-2 not found")
    assert client.post("/notifications/n-2/read").status_code == 404


def test_templates_list_and_create(api):
    client, _, templates, *_ = api
    templates.list_templates.return_value = [_template()]
    templates.create_template.return_value = _template(id="tpl-2", name="Custom")

    listed = client.get("/templates", params={"status": "in_queue", "active": "true"})
    assert listed.json()[0]["recipient"] == "Client"
    assert templates.list_templates.await_args.kwargs == {
        "status": TicketStatus.IN_QUEUE,
        "recipient": None,
        "active_only": True,
    }

    created = client.post(
        "/templates",
        json={"name": "Custom", "subject": "s", "message": "Hi {Customer Name}", "status": "in_queue"},
    )
    assert created.status_code == 201
    definition = templates.create_template.await_args.args[0]
    assert definition.recipient is TemplateRecipient.CLIENT
    assert definition.variables == ()


def test_template_update_validation_and_roles(api):
    client, _, templates, _, caller = api
    assert client.put("/templates/tpl-1", json={}).status_code == 400

    templates.update_template.return_value = _template(is_active=False)
    response = client.put("/templates/tpl-1", json={"is_active": False})
    assert response.json()["is_active"] is False
    assert templates.update_template.await_args.args[1] == {"is_active": False}

    caller["actor"] = Actor("tech-1", Role.TECHNICIAN)
    assert client.put("/templates/tpl-1", json={"is_active": True}).status_code == 403


def test_template_preview(api):
    client, _, templates, *_ = api
    templates.preview.return_value = TemplatePreview(
        template=_template(),
        text="Dear Meera Shah",
        phone="+91 98765 43210",
        link="https://wa.me/919876543210?text=Dear%20Meera%20Shah",
    )

    response = client.get("/templates/tpl-1/preview", params={"ticket_id": "t-1"})

    assert response.json() == {
        "template_id": "tpl-1",
        "ticket_id": "t-1",
        "text": "Dear Meera Shah",
        "phone": "+91 98765 43210",
        "link": "https://wa.me/919876543210?text=Dear%20Meera%20Shah",
    }
    assert client.get("/templates/tpl-1/preview").status_code == 422


def test_chat_proxies_to_assistant(api):
    client, _, _, assistant, _ = api
    assistant.reply.return_value = "Try a hard reset."

    assert client.post("/chat", json={"message": "Laptop will not boot"}).json() == {"reply": "Try a hard reset."}

    assistant.reply.side_effect = ChatAssistantError("Chat assistant is not configured")
    assert client.post("/chat", json={"message": "hello"}).status_code == 502

    assistant.reply.side_effect = ValueError("Message must not be empty")
    assert client.post("/chat", json={"message": " "}).status_code == 400


@pytest.fixture
def directory_client(api):
    client, *_ = api
    directory = AsyncMock()
    client.app.dependency_overrides[auth_deps.get_directory] = lambda: directory
    return client, directory


def test_customer_search_and_create(directory_client):
    client, directory = directory_client
    directory.search_customers.return_value = [Customer(cust_id="cust-1", name="MEERA SHAH", mobile="9876543210")]
    directory.create_customer.return_value = Customer(cust_id="cust-9", name="PRIYA NAIR", mobile="9876501234")

    listed = client.get("/customers", params={"q": "meera"})
    assert listed.json()[0]["cust_id"] == "cust-1"
    assert directory.search_customers.await_args.args == ("meera",)
    assert directory.search_customers.await_args.kwargs == {"limit": 50}

    created = client.post("/customers", json={"name": "priya nair", "mobile": "9876501234"})
    assert created.status_code == 201
    assert created.json()["name"] == "PRIYA NAIR"
    draft = directory.create_customer.await_args.args[0]
    assert (draft.name, draft.mobile, draft.email) == ("priya nair", "9876501234", None)

    directory.create_customer.side_effect = DuplicateCustomerError("A customer with mobile 9876501234 already exists")
    assert client.post("/customers", json={"name": "Priya", "mobile": "9876501234"}).status_code == 409
    assert client.post("/customers", json={"name": "", "mobile": "9876501234"}).status_code == 422


def test_technicians_are_listed_for_assignment(directory_client):
    client, directory = directory_client
    directory.list_technicians.return_value = [
        Profile(user_id="tech-2", name="Nina Tech", role="technician", mobile="+91 90000 00003"),
        Profile(user_id="tech-1", name="Tariq Tech", role="technician"),
    ]

    response = client.get("/technicians")

    assert response.json() == [
        {"user_id": "tech-2", "name": "Nina Tech", "mobile": "+91 90000 00003"},
        {"user_id": "tech-1", "name": "Tariq Tech", "mobile": None},
    ]
