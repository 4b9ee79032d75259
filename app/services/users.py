"""User management for admins and self-service profile edits."""

import logging
import secrets
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.errors import Forbidden, NotFound
from app.core.security import BCRYPT_ROUNDS, generate_invitation_password, hash_password
from app.models import Role, User
from app.schemas.common import PageMeta
from app.schemas.users import UserCreate, UserCreated, UserOut, UserUpdate, sanitize_user
from app.services import policy
from app.services.credential_store import CredentialStore
from app.services.pagination import paginate, parse_sort, resolve_page
from app.services.token_service import utc_now

logger = logging.getLogger(__name__)

USER_SORT_FIELDS = {
    "email": User.email,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "role": User.role,
    "created_at": User.created_at,
    "last_login": User.last_login,
}


class UserService:
    def __init__(
        self,
        session: Session,
        *,
        password_rounds: int = BCRYPT_ROUNDS,
        invitation_ttl: timedelta = timedelta(hours=72),
    ) -> None:
        self.session = session
        self.store = CredentialStore(session)
        self.password_rounds = password_rounds
        self.invitation_ttl = invitation_ttl

    def create_user(self, data: UserCreate) -> UserCreated:
        """
        Admin creates an account. Without a password, a one-time invitation password is
        generated, stored hashed with an expiry, and returned once in the result.
        """
        temporary_password = None
        password = data.password
        if password is None:
            temporary_password = generate_invitation_password()
            # Nobody knows this one; the invitation is the only way in.
            password = secrets.token_urlsafe(32)
        user = User(
            email=str(data.email),
            password_hash=hash_password(password, rounds=self.password_rounds),
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role,
            is_active=True,
        )
        if temporary_password is not None:
            user.default_password_hash = hash_password(temporary_password, rounds=self.password_rounds)
            user.default_password_expires_at = utc_now() + self.invitation_ttl
        self.store.add_user(user)
        self.store.commit()
        logger.info(
            "User created",
            extra={"user_id": user.id, "role": user.role.value, "invited": temporary_password is not None},
        )
        return UserCreated(user=sanitize_user(user), temporary_password=temporary_password)

    def _load(self, user_id: int) -> User:
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def get_user(self, user_id: int, principal: policy.Principal) -> UserOut:
        user = self._load(user_id)
        if not policy.can_view_user(user.id, principal):
            raise Forbidden("Cannot access other user profiles")
        return sanitize_user(user)

    def update_user(self, user_id: int, data: UserUpdate, principal: policy.Principal) -> UserOut:
        """Apply only the fields the caller sent. Non-admin self-updates are limited to names."""
        user = self._load(user_id)
        if not policy.can_update_user(user.id, principal):
            raise Forbidden("Cannot update other users")
        # Nulls are never applied, so they do not count against the allowlist.
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not policy.has_role(principal, *policy.ADMIN_ONLY) and policy.restricted_self_update_fields(changes):
            raise Forbidden("Cannot update restricted fields")
        for field, value in changes.items():
            setattr(user, field, value)
        if changes.get("is_active") is False:
            self.store.clear_refresh_tokens(user)
        self.store.commit()
        logger.info("User updated", extra={"user_id": user.id, "fields": sorted(changes)})
        return sanitize_user(user)

    def delete_user(self, user_id: int) -> None:
        """Soft delete: deactivate and revoke every session."""
        user = self._load(user_id)
        user.is_active = False
        self.store.clear_refresh_tokens(user)
        self.store.commit()
        logger.info("User deactivated", extra={"user_id": user.id})

    def list_users(
        self,
        *,
        role: Role | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        page: int | None = None,
        limit: int | None = None,
        sort: str | None = None,
    ) -> tuple[list[UserOut], PageMeta]:
        query = self.session.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    User.email.ilike(pattern),
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                )
            )
        query = query.order_by(*parse_sort(sort, USER_SORT_FIELDS, "-created_at"), User.id)
        users, meta = paginate(query, resolve_page(page, limit))
        return [sanitize_user(u) for u in users], meta
