from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..access.gate import Caller, Capability, authorize, check_account_scope
from ..common.validators import normalize_email, optional_text, require_min_length, require_non_empty
from ..core.constants import DEFAULT_TEMP_PASSWORD, MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..notifications.mailer import LoggingMailer
from .model import User
from .repository import ActivationCodeRepository, UserRepository
from .tokens import TokenSigner

logger = logging.getLogger(__name__)

_FACULTY_LOCAL_RE = re.compile(r"^[a-z]+(\.[a-z]+)*$")


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: User

    def to_dict(self) -> dict:
        return {"token": self.token, "user": self.user.to_public()}


class AuthService:
    """Use cases: signup, login, who-am-i."""

    def __init__(
        self,
        users: UserRepository,
        codes: ActivationCodeRepository,
        signer: TokenSigner,
        *,
        email_domain: str = "",
        incharge_emails: Iterable[str] = (),
        student_email_pattern: str = r"^(24pa|25pa)[a-z0-9]+$",
        invite_code: Optional[str] = None,
    ):
        self._users = users
        self._codes = codes
        self._signer = signer
        self._email_domain = email_domain.strip().lower().lstrip("@")
        self._incharge_emails = {e.strip().lower() for e in incharge_emails if e and e.strip()}
        self._student_re = re.compile(student_email_pattern, re.IGNORECASE)
        self._invite_code = invite_code or None

    def detect_role(self, email: str) -> Optional[Role]:
        email = email.strip().lower()
        local = email.split("@")[0]

        if email in self._incharge_emails or "incharge" in email or "admin" in email:
            return Role.INCHARGE
        if local and self._student_re.match(local):
            return Role.STUDENT
        if local and _FACULTY_LOCAL_RE.match(local):
            return Role.FACULTY
        return None

    def signup(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None,
        activation_code: Optional[str] = None,
        invite_code: Optional[str] = None,
    ) -> AuthResult:
        name = require_non_empty(name, "Name")
        email = normalize_email(email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        if self._email_domain and not email.endswith("@" + self._email_domain):
            raise ValidationError(f"Email must be a @{self._email_domain} email address")

        if role:
            try:
                resolved = Role(role)
            except ValueError:
                raise ValidationError("Invalid role")
        else:
            resolved = self.detect_role(email)
            if resolved is None:
                raise ValidationError("Could not determine role from email.")

        if self._users.get_by_email(email):
            raise ConflictError("Email already exists")

        if resolved != Role.STUDENT and email not in self._incharge_emails:
            if resolved == Role.FACULTY:
                if not activation_code or not activation_code.strip():
                    raise ValidationError("Activation code required for faculty.")
                if not self._codes.consume(activation_code):
                    raise AuthorizationError("Invalid or used activation code.")
            elif not self._invite_code or invite_code != self._invite_code:
                raise AuthorizationError("Invite code required.")

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=resolved,
        )
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        logger.info("signup user=%s role=%s", user.user_id, user.role.value)
        return AuthResult(token=self._signer.issue(user), user=user)

    def login(self, email: str, password: str) -> AuthResult:
        if not email or not password:
            raise ValidationError("Missing fields")

        user = self._users.get_by_email(email)
        if not user:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False
        if not ok:
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthorizationError("Account deactivated.")

        return AuthResult(token=self._signer.issue(user), user=user)

    def me(self, caller: Caller) -> User:
        user = self._users.get_by_id(caller.user_id)
        if not user:
            raise NotFoundError("User not found")
        return user


class UserService:
    """Use cases: manage accounts (incharge/admin) and self-service password change."""

    def __init__(
        self,
        users: UserRepository,
        *,
        mailer: Optional[LoggingMailer] = None,
        default_password: str = DEFAULT_TEMP_PASSWORD,
    ):
        self._users = users
        self._mailer = mailer or LoggingMailer()
        self._default_password = default_password

    def _require(self, user_id: str) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(
        self,
        caller: Caller,
        *,
        role: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[User]:
        authorize(caller, Capability.MANAGE_USERS)

        role_filter: Optional[Role] = None
        if role:
            try:
                role_filter = Role(role)
            except ValueError:
                raise ValidationError("Invalid role")

        if caller.role == Role.INCHARGE:
            # incharges only ever see the students of their own department
            role_filter = Role.STUDENT
            department = caller.department
            class_name = None

        return self._users.list_users(
            role=role_filter,
            department=optional_text(department),
            class_name=optional_text(class_name),
            search=optional_text(search),
        )

    def create_account(
        self,
        caller: Caller,
        *,
        name: str,
        email: str,
        role: str,
        password: Optional[str] = None,
        uid: Optional[str] = None,
        id_number: Optional[str] = None,
        department: Optional[str] = None,
        class_name: Optional[str] = None,
    ) -> User:
        try:
            target_role = Role(role or Role.STUDENT.value)
        except ValueError:
            raise ValidationError("Invalid role")

        if caller.role == Role.INCHARGE:
            department = caller.department or department
            class_name = caller.class_name or class_name

        check_account_scope(caller, target_role=target_role, target_department=optional_text(department))

        name = require_non_empty(name, "Name")
        email = normalize_email(email)
        uid = optional_text(uid)

        if self._users.get_by_email(email):
            raise ConflictError("Email already exists")
        if uid and self._users.get_by_uid(uid):
            raise ConflictError("UID already mapped to another user")

        temporary_password = password or self._default_password
        require_min_length(temporary_password, "Password", MIN_PASSWORD_LENGTH)

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(temporary_password),
            role=target_role,
            uid=uid,
            id_number=optional_text(id_number),
            department=optional_text(department),
            class_name=optional_text(class_name),
            must_change_password=True,
        )
        user = self._require(user_id)
        self._mailer.send_welcome(email=user.email, name=user.name, temporary_password=temporary_password)
        return user

    def update_user(self, caller: Caller, user_id: str, changes: Mapping[str, Any]) -> User:
        target = self._require(user_id)
        check_account_scope(caller, target_role=target.role, target_department=target.department)

        fields: dict[str, Any] = {}
        for key in ("name", "id_number", "department", "class_name"):
            if key in changes:
                fields[key] = optional_text(changes[key])
        if "name" in fields and not fields["name"]:
            raise ValidationError("Name is required")
        if "email" in changes:
            fields["email"] = normalize_email(changes["email"])
        if "uid" in changes:
            fields["uid"] = optional_text(changes["uid"])

        if "role" in changes:
            try:
                new_role = Role(changes["role"])
            except ValueError:
                raise ValidationError("Invalid role")
            if new_role != target.role:
                authorize(caller, Capability.CHANGE_ROLE)
            fields["role"] = new_role

        if "is_active" in changes:
            authorize(caller, Capability.TOGGLE_ACCOUNT)
            fields["is_active"] = bool(changes["is_active"])

        if caller.role == Role.INCHARGE and "department" in fields and fields["department"] != caller.department:
            raise AuthorizationError("Student belongs to another department")

        updated = self._users.update_fields(target.user_id, fields)
        if not updated:
            raise NotFoundError("User not found")
        return updated

    def delete_user(self, caller: Caller, user_id: str) -> User:
        if str(user_id) == caller.user_id:
            raise ValidationError("Cannot delete yourself")
        target = self._require(user_id)
        check_account_scope(caller, target_role=target.role, target_department=target.department)
        if not self._users.delete_by_id(target.user_id):
            raise NotFoundError("User not found")
        logger.info("user %s deleted by %s", target.user_id, caller.user_id)
        return target

    def toggle_status(self, caller: Caller, user_id: str) -> User:
        authorize(caller, Capability.TOGGLE_ACCOUNT)
        target = self._require(user_id)
        updated = self._users.update_fields(target.user_id, {"is_active": not target.is_active})
        if not updated:
            raise NotFoundError("User not found")
        return updated

    def promote(self, caller: Caller, user_id: str) -> User:
        authorize(caller, Capability.CHANGE_ROLE)
        user = self._users.set_role_if(user_id, current=Role.FACULTY, new=Role.INCHARGE)
        if not user:
            raise NotFoundError("User not found or not faculty")
        return user

    def demote(self, caller: Caller, user_id: str) -> User:
        authorize(caller, Capability.CHANGE_ROLE)
        user = self._users.set_role_if(user_id, current=Role.INCHARGE, new=Role.FACULTY)
        if not user:
            raise NotFoundError("User not found or not incharge")
        return user

    def change_password(self, caller: Caller, user_id: str, new_password: Optional[str]) -> None:
        if not new_password:
            raise ValidationError("New password is required")
        if caller.role != Role.ADMIN and str(user_id) != caller.user_id:
            raise AuthorizationError("Forbidden")
        require_min_length(new_password, "Password", MIN_PASSWORD_LENGTH)

        updated = self._users.update_fields(
            str(user_id),
            {"password_hash": generate_password_hash(new_password), "must_change_password": False},
        )
        if not updated:
            raise NotFoundError("User not found")
        if updated.user_id != caller.user_id:
            self._mailer.send_password_reset(email=updated.email, new_password=new_password)

    def map_uid(self, caller: Caller, user_id: str, uid: Optional[str]) -> User:
        authorize(caller, Capability.MAP_HARDWARE_TAG)
        uid = optional_text(uid)
        if not uid:
            raise ValidationError("UID is required")

        target = self._require(user_id)
        check_account_scope(caller, target_role=target.role, target_department=target.department)
        owner = self._users.get_by_uid(uid)
        if owner and owner.user_id != target.user_id:
            raise ConflictError("UID already mapped to another user")

        updated = self._users.update_fields(target.user_id, {"uid": uid})
        if not updated:
            raise NotFoundError("User not found")
        return updated
