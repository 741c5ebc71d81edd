"""
Sample data fixtures for testing

Builds an in-memory MongoDB (mongomock) with the default catalog and menu,
plus request payloads and a controllable clock.
"""

from datetime import datetime, timedelta

import mongomock

from ticketdesk.catalog import seed_catalog
from ticketdesk.db import ensure_indexes
from ticketdesk.models import Identity, TicketCreate, TicketUpdate

REQUESTER = Identity(email="maria@pitang.com", name="Maria Souza")


def create_database(seed=True):
    """
    Create a fresh mongomock database.

    Returns:
        mongomock.Database: indexed and, unless ``seed`` is False, seeded
    """
    database = mongomock.MongoClient().get_database("ticketdesk_test")
    ensure_indexes(database)
    if seed:
        seed_catalog(database)
    return database


def ticket_payload(**overrides):
    """Camel-cased JSON body for POST /tickets."""
    payload = {
        "problemDescription": "Login button does nothing on Safari",
        "priority": "Alto",
        "type": "Bug",
        "environment": "Produção",
        "origin": "Sala de Negociação",
        "assigneeEmail": "alice@pitang.com",
        "evidence": "screenshot-safari.png",
    }
    payload.update(overrides)
    return payload


def create_request(**overrides):
    return TicketCreate(**ticket_payload(**overrides))


def update_request(status, **overrides):
    payload = ticket_payload(**overrides)
    payload["status"] = status
    return TicketUpdate(**payload)


class FakeClock:
    """Deterministic clock; each tick moves forward by ``step``."""

    def __init__(self, start=datetime(2024, 3, 1, 9, 0, 0), step=timedelta(minutes=5)):
        self.current = start
        self.step = step

    def __call__(self):
        self.current = self.current + self.step
        return self.current
