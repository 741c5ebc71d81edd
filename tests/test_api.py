"""
HTTP tests for the FastAPI application

The database dependency is swapped for a seeded mongomock database and the
suggestion dependency for a stub, so the app runs without MongoDB or Groq.
"""

import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from groq import GroqError

from ticketdesk.api import app, get_suggester
from ticketdesk.db import get_database
from ticketdesk.errors import UpstreamError
from ticketdesk.models import AssigneeSuggestion

from tests.fixtures.sample_data import create_database, ticket_payload

AUTH = {"X-Authenticated-User-Email": "maria@pitang.com", "X-Authenticated-User-Name": "Maria Souza"}


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.db = create_database()
        self.suggester = MagicMock()
        app.dependency_overrides[get_database] = lambda: self.db
        app.dependency_overrides[get_suggester] = lambda: self.suggester
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def create_ticket(self, **overrides):
        response = self.client.post("/tickets", json=ticket_payload(**overrides), headers=AUTH)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def update_ticket(self, ticket_id, status, **overrides):
        body = ticket_payload(**overrides)
        body["status"] = status
        return self.client.put(f"/tickets/{ticket_id}", json=body, headers=AUTH)


class TestTicketRoutes(ApiTestCase):

    def test_create(self):
        ticket = self.create_ticket()
        self.assertEqual(ticket["number"], "TCK-001")
        self.assertEqual(ticket["status"]["description"], "Para fazer")
        self.assertEqual(ticket["priority"]["description"], "Alto")
        self.assertEqual(ticket["requester"]["email"], "maria@pitang.com")
        self.assertEqual(ticket["assignee"]["email"], "alice@pitang.com")
        self.assertIsNone(ticket["handlingStartedAt"])
        self.assertIsNone(ticket["handlingEndedAt"])
        self.assertEqual(ticket["createdAt"], ticket["updatedAt"])
        self.assertNotIn("passwordHash", ticket["requester"])

    def test_create_requires_identity(self):
        response = self.client.post("/tickets", json=ticket_payload())
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.db.tickets.count_documents({}), 0)

    def test_create_collects_field_errors(self):
        response = self.client.post(
            "/tickets",
            json=ticket_payload(problemDescription="short", evidence="", assigneeEmail="not-an-email"),
            headers=AUTH,
        )
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertIn("problemDescription", errors)
        self.assertIn("evidence", errors)
        self.assertIn("assigneeEmail", errors)

    def test_create_unknown_lookup(self):
        response = self.client.post("/tickets", json=ticket_payload(type="Pedido"), headers=AUTH)
        self.assertEqual(response.status_code, 400)
        self.assertIn("Tipo 'Pedido'", response.json()["message"])

    def test_get_and_list(self):
        created = self.create_ticket()
        self.create_ticket(type="Melhoria")

        response = self.client.get(f"/tickets/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], created["id"])

        self.assertEqual(len(self.client.get("/tickets").json()), 2)
        filtered = self.client.get("/tickets", params={"type": "Melhoria"}).json()
        self.assertEqual([t["type"]["description"] for t in filtered], ["Melhoria"])
        by_assignee = self.client.get("/tickets", params={"assigneeEmail": "alice@pitang.com"}).json()
        self.assertEqual(len(by_assignee), 2)

    def test_get_unknown(self):
        self.assertEqual(self.client.get("/tickets/5f1d7f2b9c1e4a3b2c1d0e9f").status_code, 404)
        self.assertEqual(self.client.get("/tickets/nope").status_code, 404)

    def test_lifecycle_over_http(self):
        ticket = self.create_ticket()

        started = self.update_ticket(ticket["id"], "Em Andamento")
        self.assertEqual(started.status_code, 200, started.text)
        t1 = started.json()["handlingStartedAt"]
        self.assertIsNotNone(t1)

        done = self.update_ticket(ticket["id"], "Finalizado", resolutionDetails="Patched").json()
        self.assertEqual(done["handlingStartedAt"], t1)
        self.assertIsNotNone(done["handlingEndedAt"])
        self.assertEqual(done["resolutionDetails"], "Patched")

        reopened = self.update_ticket(ticket["id"], "Em Andamento").json()
        self.assertIsNone(reopened["handlingEndedAt"])
        self.assertEqual(reopened["handlingStartedAt"], t1)

    def test_update_unknown_ticket(self):
        response = self.update_ticket("5f1d7f2b9c1e4a3b2c1d0e9f", "Em Andamento")
        self.assertEqual(response.status_code, 404)

    def test_update_requires_status(self):
        ticket = self.create_ticket()
        response = self.client.put(f"/tickets/{ticket['id']}", json=ticket_payload(), headers=AUTH)
        self.assertEqual(response.status_code, 400)
        self.assertIn("status", response.json()["errors"])

    def test_stats(self):
        ticket = self.create_ticket()
        self.create_ticket()
        self.update_ticket(ticket["id"], "Finalizado")

        response = self.client.get("/tickets/stats", params={"by": "status"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            [{"name": "Finalizado", "value": 1}, {"name": "Para fazer", "value": 1}],
        )
        self.assertEqual(self.client.get("/tickets/stats", params={"by": "mood"}).status_code, 404)


class TestUserRoutes(ApiTestCase):

    def create_user(self, **overrides):
        body = {"name": "Ana Lima", "email": "ana@pitang.com", "password": "abc123"}
        body.update(overrides)
        return self.client.post("/users", json=body, headers=AUTH)

    def test_create_and_read(self):
        response = self.create_user(photoUrl="https://cdn.example.com/ana.png")
        self.assertEqual(response.status_code, 201)
        user = response.json()
        self.assertNotIn("passwordHash", user)
        self.assertNotIn("password", user)
        self.assertTrue(user["active"])
        self.assertEqual(self.client.get(f"/users/{user['id']}").json()["photoUrl"], "https://cdn.example.com/ana.png")
        self.assertEqual([u["email"] for u in self.client.get("/users").json()], ["ana@pitang.com"])

    def test_create_validation(self):
        response = self.create_user(name="A", password="123")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(set(response.json()["errors"]), {"name", "password"})

    def test_create_foreign_domain(self):
        self.assertEqual(self.create_user(email="ana@gmail.com").status_code, 400)

    def test_create_duplicate(self):
        self.create_user()
        self.assertEqual(self.create_user().status_code, 409)

    def test_update(self):
        user = self.create_user().json()
        response = self.client.put(f"/users/{user['id']}", json={"active": False}, headers=AUTH)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["active"])
        self.assertEqual(response.json()["name"], "Ana Lima")

    def test_update_conflict(self):
        self.create_user()
        other = self.create_user(name="Bruno", email="bruno@pitang.com").json()
        response = self.client.put(f"/users/{other['id']}", json={"email": "ana@pitang.com"}, headers=AUTH)
        self.assertEqual(response.status_code, 409)

    def test_delete(self):
        user = self.create_user().json()
        response = self.client.delete(f"/users/{user['id']}", headers=AUTH)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(f"/users/{user['id']}").status_code, 404)

    def test_delete_referenced(self):
        ticket = self.create_ticket()
        response = self.client.delete(f"/users/{ticket['assignee']['id']}", headers=AUTH)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.client.get(f"/users/{ticket['assignee']['id']}").status_code, 200)

    def test_mutations_require_identity(self):
        self.assertEqual(
            self.client.post("/users", json={"name": "Ana", "email": "ana@pitang.com", "password": "abc123"}).status_code,
            401,
        )


class TestCatalogRoutes(ApiTestCase):

    def test_lookups(self):
        response = self.client.get("/lookups/environment")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [e["description"] for e in response.json()],
            ["Desenvolvimento", "Homologação", "Produção"],
        )
        self.assertTrue(all("id" in e for e in response.json()))

    def test_unknown_lookup_category(self):
        self.assertEqual(self.client.get("/lookups/flavour").status_code, 404)

    def test_assignees(self):
        emails = [a["email"] for a in self.client.get("/assignees").json()]
        self.assertIn("alice@pitang.com", emails)

    def test_menu(self):
        menu = self.client.get("/menu").json()
        self.assertEqual([m["title"] for m in menu], ["Cadastros", "Tickets"])
        self.assertEqual([m["title"] for m in menu[0]["subMenus"]], ["Usuários"])


class TestSuggestionRoute(ApiTestCase):

    def test_suggestion(self):
        self.suggester.suggest.return_value = AssigneeSuggestion(
            assignee_email="charlie@pitang.com", reason="Knows the trading room"
        )
        response = self.client.post("/ai/suggest-assignee", json={"problemDescription": "Quotes are frozen"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"assigneeEmail": "charlie@pitang.com", "reason": "Knows the trading room"}
        )
        self.suggester.suggest.assert_called_once_with("Quotes are frozen")

    def test_empty_description(self):
        response = self.client.post("/ai/suggest-assignee", json={"problemDescription": ""})
        self.assertEqual(response.status_code, 400)
        self.suggester.suggest.assert_not_called()

    def test_upstream_failure(self):
        error = UpstreamError("Failed to get AI assignee suggestion.")
        error.__cause__ = GroqError("timeout")
        self.suggester.suggest.side_effect = error
        response = self.client.post("/ai/suggest-assignee", json={"problemDescription": "Quotes are frozen"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["message"], "Failed to get AI assignee suggestion.")


if __name__ == "__main__":
    unittest.main()
