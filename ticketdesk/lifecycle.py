"""Ticket lifecycle: validation, lookup resolution, handling timestamps, persistence.

Writes follow a resolve-then-commit order. Every lookup description is
resolved first and all misses are reported together; only then are the
requester/assignee records upserted and the ticket written, so a bad lookup
never leaves a partial write behind.
"""

from datetime import datetime
from pymongo.database import Database
from typing import Callable, Dict, List, Optional, Tuple
import logging

from .catalog import LookupCatalog, parse_category
from .config import DEFAULT_STATUS, STATUS_DONE, STATUS_IN_PROGRESS, STATUS_TODO
from .directory import UserDirectory, assignee_name, local_part, normalize_email
from .errors import NotFoundError
from .models import (
    ChartDataItem,
    Identity,
    LookupCategory,
    LookupEntity,
    Ticket,
    TicketCreate,
    TicketUpdate,
    TicketView,
    User,
    utcnow,
)
from .repositories import TicketRepository

logger = logging.getLogger(__name__)

# request field that carries each lookup description
LOOKUP_FIELDS = {
    LookupCategory.PRIORITY: "priority",
    LookupCategory.TYPE: "type",
    LookupCategory.ENVIRONMENT: "environment",
    LookupCategory.ORIGIN: "origin",
    LookupCategory.STATUS: "status",
}


def apply_status_transition(
    previous: Optional[str],
    current: str,
    started_at: Optional[datetime],
    ended_at: Optional[datetime],
    now: datetime,
    todo: str = STATUS_TODO,
    in_progress: str = STATUS_IN_PROGRESS,
    done: str = STATUS_DONE,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Return the (handling start, handling end) pair after a status change.

    Statuses are compared by description. Work starts the first time a to-do
    ticket moves to in-progress; reaching done stamps the end, and leaving
    done retracts it.
    """
    if previous == todo and current == in_progress and started_at is None:
        started_at = now

    if current == done and previous != done:
        ended_at = now
    elif previous == done and current != done:
        ended_at = None

    return started_at, ended_at


class TicketService:
    def __init__(
        self,
        database: Database,
        clock: Callable[[], datetime] = utcnow,
        directory: Optional[UserDirectory] = None,
    ):
        self.tickets = TicketRepository(database)
        self.catalog = LookupCatalog(database)
        self.directory = directory or UserDirectory(database)
        self.clock = clock

    def _resolve_lookups(self, data: TicketCreate, status: str) -> Dict[LookupCategory, LookupEntity]:
        wanted = {
            LookupCategory.PRIORITY: data.priority,
            LookupCategory.TYPE: data.type,
            LookupCategory.ENVIRONMENT: data.environment,
            LookupCategory.ORIGIN: data.origin,
            LookupCategory.STATUS: status,
        }
        return self.catalog.resolve_all(wanted, LOOKUP_FIELDS)

    def _upsert_assignee(self, email: Optional[str]) -> Optional[User]:
        if not email:
            return None
        email = str(email)
        return self.directory.upsert_by_email(email, assignee_name(email))

    def create(self, data: TicketCreate, requester: Identity) -> Ticket:
        lookups = self._resolve_lookups(data, DEFAULT_STATUS)

        requester_email = str(requester.email)
        requester_user = self.directory.upsert_by_email(
            requester_email, requester.name or local_part(requester_email)
        )
        assignee = self._upsert_assignee(data.assignee_email)

        now = self.clock()
        ticket = Ticket(
            number=self.tickets.next_number(),
            problem_description=data.problem_description,
            priority_id=lookups[LookupCategory.PRIORITY].id,
            type_id=lookups[LookupCategory.TYPE].id,
            environment_id=lookups[LookupCategory.ENVIRONMENT].id,
            origin_id=lookups[LookupCategory.ORIGIN].id,
            status_id=lookups[LookupCategory.STATUS].id,
            requester_id=requester_user.id,
            assignee_id=assignee.id if assignee else None,
            evidence=data.evidence,
            attachments=data.attachments,
            created_at=now,
            updated_at=now,
        )
        created = self.tickets.create(ticket)
        logger.info("Ticket %s (%s) created by %s", created.number, created.id, requester_email)
        return created

    def update(self, ticket_id: str, data: TicketUpdate) -> Ticket:
        existing = self.tickets.find(ticket_id)
        if existing is None:
            raise NotFoundError("Ticket not found")

        lookups = self._resolve_lookups(data, data.status)
        assignee = self._upsert_assignee(data.assignee_email)

        previous = self.catalog.describe(LookupCategory.STATUS, existing.status_id)
        previous_status = previous.description if previous else None
        current_status = lookups[LookupCategory.STATUS].description

        now = self.clock()
        started_at, ended_at = apply_status_transition(
            previous_status,
            current_status,
            existing.handling_started_at,
            existing.handling_ended_at,
            now,
        )

        ticket = existing.model_copy(
            update={
                "problem_description": data.problem_description,
                "priority_id": lookups[LookupCategory.PRIORITY].id,
                "type_id": lookups[LookupCategory.TYPE].id,
                "environment_id": lookups[LookupCategory.ENVIRONMENT].id,
                "origin_id": lookups[LookupCategory.ORIGIN].id,
                "status_id": lookups[LookupCategory.STATUS].id,
                "assignee_id": assignee.id if assignee else None,
                "evidence": data.evidence,
                "attachments": data.attachments,
                "resolution_details": data.resolution_details,
                "updated_at": now,
                "handling_started_at": started_at,
                "handling_ended_at": ended_at,
            }
        )
        updated = self.tickets.replace(ticket)
        if updated is None:
            raise NotFoundError("Ticket not found")
        if previous_status != current_status:
            logger.info("Ticket %s moved from %r to %r", updated.number, previous_status, current_status)
        return updated

    def get(self, ticket_id: str) -> Ticket:
        ticket = self.tickets.find(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    def list(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        type: Optional[str] = None,
        environment: Optional[str] = None,
        origin: Optional[str] = None,
        assignee_email: Optional[str] = None,
        requester_email: Optional[str] = None,
    ) -> List[Ticket]:
        filters = {}
        by_description = {
            LookupCategory.STATUS: status,
            LookupCategory.PRIORITY: priority,
            LookupCategory.TYPE: type,
            LookupCategory.ENVIRONMENT: environment,
            LookupCategory.ORIGIN: origin,
        }
        for category, description in by_description.items():
            if description is None:
                continue
            entity = self.catalog.resolve(category, description)
            if entity is None:
                return []
            filters[f"{category.value}_id"] = entity.id

        for field, email in (("assignee_id", assignee_email), ("requester_id", requester_email)):
            if email is None:
                continue
            user = self.directory.users.find_by_email(normalize_email(email))
            if user is None:
                return []
            filters[field] = user.id

        return self.tickets.list(filters)

    def counts(self, category: str) -> List[ChartDataItem]:
        """Ticket totals per lookup value, for the dashboard charts."""
        category = parse_category(category)
        totals = self.tickets.count_by(f"{category.value}_id")
        items = [
            ChartDataItem(name=entity.description, value=totals[entity.id])
            for entity in self.catalog.list(category)
            if totals.get(entity.id)
        ]
        return sorted(items, key=lambda item: item.name)

    def view(self, ticket: Ticket, _cache: Optional[dict] = None) -> TicketView:
        cache = _cache if _cache is not None else {}

        def lookup(category: LookupCategory, entity_id: str) -> LookupEntity:
            key = (category, entity_id)
            if key not in cache:
                cache[key] = self.catalog.describe(category, entity_id) or LookupEntity(
                    id=entity_id, description=""
                )
            return cache[key]

        def person(user_id: Optional[str]) -> Optional[User]:
            if user_id is None:
                return None
            key = ("user", user_id)
            if key not in cache:
                cache[key] = self.directory.users.find(user_id)
            return cache[key]

        return TicketView(
            id=ticket.id,
            number=ticket.number,
            problem_description=ticket.problem_description,
            priority=lookup(LookupCategory.PRIORITY, ticket.priority_id),
            type=lookup(LookupCategory.TYPE, ticket.type_id),
            environment=lookup(LookupCategory.ENVIRONMENT, ticket.environment_id),
            origin=lookup(LookupCategory.ORIGIN, ticket.origin_id),
            status=lookup(LookupCategory.STATUS, ticket.status_id),
            requester=person(ticket.requester_id),
            assignee=person(ticket.assignee_id),
            evidence=ticket.evidence,
            attachments=ticket.attachments,
            resolution_details=ticket.resolution_details,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            handling_started_at=ticket.handling_started_at,
            handling_ended_at=ticket.handling_ended_at,
        )

    def view_all(self, tickets: List[Ticket]) -> List[TicketView]:
        cache: dict = {}
        return [self.view(t, cache) for t in tickets]
