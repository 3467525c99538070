from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fakes import FakeActivationCodeRepo, add_user
from smart_attendance.core.enums import Role
from smart_attendance.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from smart_attendance.users.service import AuthService
from smart_attendance.users.tokens import TokenSigner


@pytest.fixture
def codes():
    return FakeActivationCodeRepo(["FAC-2026"])


@pytest.fixture
def signer():
    return TokenSigner("test-secret")


@pytest.fixture
def auth(users, codes, signer):
    return AuthService(
        users,
        codes,
        signer,
        email_domain="vishnu.edu.in",
        incharge_emails=["hod.cse@vishnu.edu.in"],
        invite_code="let-me-in",
    )


def test_student_role_detected_from_email(auth, signer):
    result = auth.signup(name="Alice", email="24PA1A0501@vishnu.edu.in", password="secret123")

    assert result.user.role == Role.STUDENT
    assert result.user.email == "24pa1a0501@vishnu.edu.in"
    caller = signer.decode(result.token)
    assert caller.user_id == result.user.user_id
    assert caller.role == Role.STUDENT
    assert result.to_dict()["user"]["role"] == "student"


def test_faculty_signup_consumes_activation_code(auth, codes):
    with pytest.raises(ValidationError):
        auth.signup(name="Ravi", email="ravi.kumar@vishnu.edu.in", password="secret123")

    result = auth.signup(
        name="Ravi", email="ravi.kumar@vishnu.edu.in", password="secret123", activation_code="FAC-2026"
    )
    assert result.user.role == Role.FACULTY
    assert codes.codes["FAC-2026"] is True

    with pytest.raises(AuthorizationError):
        auth.signup(name="Sita", email="sita.devi@vishnu.edu.in", password="secret123", activation_code="FAC-2026")


def test_listed_incharge_needs_no_code(auth):
    result = auth.signup(name="Hod", email="hod.cse@vishnu.edu.in", password="secret123")
    assert result.user.role == Role.INCHARGE


def test_privileged_roles_need_invite_code(auth):
    with pytest.raises(AuthorizationError):
        auth.signup(name="Root", email="root.user@vishnu.edu.in", password="secret123", role="admin")
    result = auth.signup(
        name="Root", email="root.user@vishnu.edu.in", password="secret123", role="admin", invite_code="let-me-in"
    )
    assert result.user.role == Role.ADMIN


@pytest.mark.parametrize(
    "email, password",
    [
        ("alice@gmail.com", "secret123"),
        ("x123@vishnu.edu.in", "secret123"),
        ("24pa1a0501@vishnu.edu.in", "short"),
        ("not-an-email", "secret123"),
    ],
)
def test_signup_rejects_bad_input(auth, email, password):
    with pytest.raises(ValidationError):
        auth.signup(name="Someone", email=email, password=password)


def test_signup_rejects_duplicate_email(auth):
    auth.signup(name="Alice", email="24pa1a0501@vishnu.edu.in", password="secret123")
    with pytest.raises(ConflictError):
        auth.signup(name="Alice", email="24pa1a0501@vishnu.edu.in", password="secret123")


def test_login(auth, users):
    add_user(users, name="Alice", email="24pa1a0501@vishnu.edu.in", role=Role.STUDENT, password="secret123")
    add_user(
        users, name="Bob", email="24pa1a0502@vishnu.edu.in", role=Role.STUDENT, password="secret123", is_active=False
    )

    assert auth.login("24pa1a0501@vishnu.edu.in", "secret123").user.name == "Alice"
    with pytest.raises(AuthenticationError):
        auth.login("24pa1a0501@vishnu.edu.in", "wrong-password")
    with pytest.raises(AuthenticationError):
        auth.login("nobody@vishnu.edu.in", "secret123")
    with pytest.raises(AuthorizationError):
        auth.login("24pa1a0502@vishnu.edu.in", "secret123")
    with pytest.raises(ValidationError):
        auth.login("", "")


def test_tokens_expire_and_reject_tampering(users):
    user = add_user(users, name="Alice", email="24pa1a0501@vishnu.edu.in", role=Role.STUDENT)
    issued_at = datetime.now(timezone.utc) - timedelta(hours=2)
    stale = TokenSigner("test-secret", ttl_hours=1, clock=lambda: issued_at).issue(user)

    with pytest.raises(AuthenticationError, match="expired"):
        TokenSigner("test-secret").decode(stale)
    with pytest.raises(AuthenticationError):
        TokenSigner("other-secret").decode(TokenSigner("test-secret").issue(user))
    with pytest.raises(AuthenticationError):
        TokenSigner("test-secret").decode("not-a-token")
    with pytest.raises(ValueError):
        TokenSigner("")
