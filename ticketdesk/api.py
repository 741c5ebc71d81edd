from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from typing import List, Optional
import logging
import uvicorn

from .catalog import LookupCatalog, seed_catalog
from .config import CORS_ORIGINS, LOG_LEVEL, SEED_ON_STARTUP, is_production
from .db import ensure_indexes, get_database
from .directory import UserDirectory, permitted_assignees
from .errors import TicketDeskError, UpstreamError, ValidationError
from .lifecycle import TicketService
from .menu import load_menu
from .models import (
    Assignee,
    AssigneeSuggestion,
    ChartDataItem,
    Identity,
    LookupEntity,
    MenuNode,
    SuggestAssigneeRequest,
    TicketCreate,
    TicketUpdate,
    TicketView,
    User,
    UserCreate,
    UserUpdate,
)
from .suggest import AssigneeSuggester

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database = get_database()
    ensure_indexes(database)
    if SEED_ON_STARTUP:
        seed_catalog(database)
    yield


app = FastAPI(title="Ticketdesk API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error translation

@app.exception_handler(TicketDeskError)
async def ticketdesk_error_handler(request: Request, exc: TicketDeskError):
    body = {"message": exc.message}
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, UpstreamError) and not is_production() and exc.__cause__ is not None:
        body["details"] = {"name": type(exc.__cause__).__name__, "message": str(exc.__cause__)}
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        loc = [str(part) for part in err["loc"] if part not in ("body", "query", "path", "header")]
        errors.setdefault(".".join(loc) or "body", []).append(err["msg"])
    return JSONResponse(status_code=400, content={"message": "Invalid input", "errors": errors})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.warning("Duplicate key on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=409, content={"message": "A record with this value already exists."})


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database failure on %s %s", request.method, request.url.path)
    if is_production():
        return JSONResponse(
            status_code=500,
            content={"message": "Request failed. Please check server logs for details."},
        )
    return JSONResponse(
        status_code=500,
        content={
            "message": f"Request failed: {exc}",
            "details": {"name": type(exc).__name__, "message": str(exc)},
        },
    )


# Dependencies

def get_ticket_service(database: Database = Depends(get_database)) -> TicketService:
    return TicketService(database)


def get_directory(database: Database = Depends(get_database)) -> UserDirectory:
    return UserDirectory(database)


def get_catalog(database: Database = Depends(get_database)) -> LookupCatalog:
    return LookupCatalog(database)


def get_suggester() -> AssigneeSuggester:
    return AssigneeSuggester()


def get_identity(
    x_authenticated_user_email: Optional[str] = Header(default=None),
    x_authenticated_user_name: Optional[str] = Header(default=None),
) -> Identity:
    if not x_authenticated_user_email:
        raise HTTPException(status_code=401, detail="Authentication required: user email not found in request.")
    try:
        return Identity(email=x_authenticated_user_email, name=x_authenticated_user_name or None)
    except ValueError:
        raise HTTPException(status_code=401, detail="Authentication required: invalid user email.")


# Tickets

@app.get("/tickets", response_model=List[TicketView])
def list_tickets(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    type: Optional[str] = None,
    environment: Optional[str] = None,
    origin: Optional[str] = None,
    assignee_email: Optional[str] = Query(default=None, alias="assigneeEmail"),
    requester_email: Optional[str] = Query(default=None, alias="requesterEmail"),
    service: TicketService = Depends(get_ticket_service),
):
    tickets = service.list(
        status=status,
        priority=priority,
        type=type,
        environment=environment,
        origin=origin,
        assignee_email=assignee_email,
        requester_email=requester_email,
    )
    return service.view_all(tickets)


@app.get("/tickets/stats", response_model=List[ChartDataItem])
def ticket_stats(by: str = "status", service: TicketService = Depends(get_ticket_service)):
    return service.counts(by)


@app.get("/tickets/{ticket_id}", response_model=TicketView)
def get_ticket(ticket_id: str, service: TicketService = Depends(get_ticket_service)):
    return service.view(service.get(ticket_id))


@app.post("/tickets", response_model=TicketView, status_code=201)
def create_ticket(
    ticket: TicketCreate,
    identity: Identity = Depends(get_identity),
    service: TicketService = Depends(get_ticket_service),
):
    return service.view(service.create(ticket, identity))


@app.put("/tickets/{ticket_id}", response_model=TicketView)
def update_ticket(
    ticket_id: str,
    ticket: TicketUpdate,
    identity: Identity = Depends(get_identity),
    service: TicketService = Depends(get_ticket_service),
):
    updated = service.update(ticket_id, ticket)
    logger.info("Ticket %s updated by %s", updated.number, identity.email)
    return service.view(updated)


# Users

@app.get("/users", response_model=List[User])
def list_users(directory: UserDirectory = Depends(get_directory)):
    return directory.list()


@app.get("/users/{user_id}", response_model=User)
def get_user(user_id: str, directory: UserDirectory = Depends(get_directory)):
    return directory.get(user_id)


@app.post("/users", response_model=User, status_code=201)
def create_user(
    user: UserCreate,
    identity: Identity = Depends(get_identity),
    directory: UserDirectory = Depends(get_directory),
):
    return directory.create(user)


@app.put("/users/{user_id}", response_model=User)
def update_user(
    user_id: str,
    user: UserUpdate,
    identity: Identity = Depends(get_identity),
    directory: UserDirectory = Depends(get_directory),
):
    return directory.update(user_id, user)


@app.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    identity: Identity = Depends(get_identity),
    directory: UserDirectory = Depends(get_directory),
):
    directory.delete(user_id)
    return {"message": "User deleted"}


# Catalog and navigation

@app.get("/lookups/{category}", response_model=List[LookupEntity])
def list_lookups(category: str, catalog: LookupCatalog = Depends(get_catalog)):
    return catalog.list(category)


@app.get("/assignees", response_model=List[Assignee])
def list_assignees():
    return permitted_assignees()


@app.get("/menu", response_model=List[MenuNode])
def get_menu(database: Database = Depends(get_database)):
    return load_menu(database)


# AI

@app.post("/ai/suggest-assignee", response_model=AssigneeSuggestion)
def suggest_assignee(body: SuggestAssigneeRequest, suggester: AssigneeSuggester = Depends(get_suggester)):
    return suggester.suggest(body.problem_description)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
