from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from typing import Iterable, List, Optional
import hashlib
import logging
import os

from .config import ALLOWED_DOMAINS, PASSWORD_HASH_ITERATIONS, PERMITTED_ASSIGNEES
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Assignee, User, UserCreate, UserUpdate
from .repositories import TicketRepository, UserRepository

logger = logging.getLogger(__name__)


def hash_password(password: str, iterations: int = PASSWORD_HASH_ITERATIONS) -> str:
    salt = os.urandom(16).hex()
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].lower()


def normalize_email(email: str) -> str:
    """Lower-case the domain part, matching how stored addresses are kept."""
    local, _, domain = email.strip().rpartition("@")
    return f"{local}@{domain.lower()}" if local else email.strip()


def local_part(email: str) -> str:
    return email.split("@", 1)[0]


def permitted_assignees(allowed_domains: Iterable[str] = ALLOWED_DOMAINS) -> List[Assignee]:
    domains = {d.lower() for d in allowed_domains}
    return [Assignee(**a) for a in PERMITTED_ASSIGNEES if email_domain(a["email"]) in domains]


def assignee_name(email: str) -> str:
    """Display name for an assignee: the known table first, then the local part."""
    for known in PERMITTED_ASSIGNEES:
        if known["email"] == email:
            return known["name"]
    return local_part(email)


class UserDirectory:
    def __init__(self, database: Database, allowed_domains: Optional[Iterable[str]] = None):
        self.users = UserRepository(database)
        self.tickets = TicketRepository(database)
        self.allowed_domains = [d.lower() for d in (allowed_domains if allowed_domains is not None else ALLOWED_DOMAINS)]

    def _check_domain(self, email: str) -> None:
        if email_domain(email) not in self.allowed_domains:
            raise ValidationError(
                "Email domain is not allowed",
                {"email": [f"Accepted domains: {', '.join(self.allowed_domains)}"]},
            )

    def list(self) -> List[User]:
        return self.users.list()

    def get(self, user_id: str) -> User:
        user = self.users.find(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def create(self, data: UserCreate) -> User:
        email = str(data.email)
        self._check_domain(email)
        if self.users.email_taken(email):
            raise ConflictError("This email is already in use")
        user = User(
            name=data.name,
            email=email,
            password_hash=hash_password(data.password),
            photo_url=data.photo_url or None,
            active=True,
        )
        try:
            created = self.users.create(user)
        except DuplicateKeyError:
            raise ConflictError("This email is already in use")
        logger.info("User %s created (%s)", created.id, created.email)
        return created

    def update(self, user_id: str, data: UserUpdate) -> User:
        existing = self.users.find(user_id)
        if existing is None:
            raise NotFoundError("User not found")

        fields = {}
        supplied = data.model_fields_set
        if data.name is not None:
            fields["name"] = data.name
        if data.email is not None and str(data.email) != existing.email:
            email = str(data.email)
            self._check_domain(email)
            if self.users.email_taken(email, exclude_id=user_id):
                logger.warning("Email %s already used by another user", email)
                raise ConflictError("This email is already in use by another user")
            fields["email"] = email
        if "photo_url" in supplied:
            fields["photo_url"] = data.photo_url
        if data.active is not None:
            fields["active"] = data.active

        try:
            user = self.users.update(user_id, fields)
        except DuplicateKeyError:
            raise ConflictError("This email is already in use by another user")
        if user is None:
            raise NotFoundError("User not found")
        return user

    def delete(self, user_id: str) -> None:
        if self.users.find(user_id) is None:
            raise NotFoundError("User not found")
        if self.tickets.count_referencing(user_id) > 0:
            logger.warning("Refusing to delete user %s: referenced by tickets", user_id)
            raise ConflictError(
                "This user cannot be deleted because it is associated with tickets. "
                "Consider deactivating the user instead."
            )
        self.users.delete(user_id)
        logger.info("User %s deleted", user_id)

    def upsert_by_email(self, email: str, name: str) -> User:
        try:
            return self.users.upsert_by_email(email, name)
        except DuplicateKeyError:
            raise ConflictError(f"Email {email} was registered concurrently")
