"""
Company and host registration, email verification, login and user listings.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import Settings
from .errors import AuthenticationError, ConflictError, ForbiddenError
from .models import ROLE_ADMIN, ROLE_HOST, Company, User
from .schemas import (
    CompanyRegisterPayload,
    HostOut,
    HostRegisterPayload,
    LoginResponse,
    UserOut,
)
from .security import (
    Principal,
    create_access_token,
    hash_password,
    read_verification_token,
    verify_password,
)
from .tenancy import resolve_company

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "An account with this email already exists."


def _full_name(first_name: str, last_name: Optional[str]) -> str:
    return f"{first_name} {last_name or ''}".strip()


def _email_taken(db: Session, email: str) -> bool:
    return db.scalar(select(User.id).where(User.email == email)) is not None


# PUBLIC_INTERFACE
def register_company(db: Session, payload: CompanyRegisterPayload) -> User:
    """
    Creates an (unverified) admin user and its company profile.
    The caller sends the verification email once this returns.
    """
    company_name = payload.company_name.strip()
    with db.begin():
        if _email_taken(db, payload.email):
            raise ConflictError(DUPLICATE_EMAIL)
        if db.scalar(select(User.id).where(User.company_name == company_name).limit(1)) is not None:
            raise ConflictError("A company with this name is already registered.")

        admin = User(
            name=_full_name(payload.first_name, payload.last_name),
            email=payload.email,
            password=hash_password(payload.password),
            role=ROLE_ADMIN,
            company_name=company_name,
            is_verified=False,
        )
        db.add(admin)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(DUPLICATE_EMAIL) from exc
        db.add(
            Company(
                user=admin,
                first_name=payload.first_name,
                last_name=payload.last_name,
                role=ROLE_ADMIN,
                company_name=company_name,
                mobile_number=payload.mobile_number,
            )
        )

    db.refresh(admin)
    logger.info("Registered company %r with admin %s (user %s)", company_name, admin.email, admin.id)
    return admin


# PUBLIC_INTERFACE
def register_host(db: Session, principal: Principal, payload: HostRegisterPayload) -> User:
    """
    Creates a host in the calling admin's company.
    """
    with db.begin():
        company_name = resolve_company(db, principal)
        if _email_taken(db, payload.email):
            raise ConflictError(DUPLICATE_EMAIL)

        host = User(
            name=_full_name(payload.first_name, payload.last_name),
            email=payload.email,
            password=hash_password(payload.password),
            role=ROLE_HOST,
            company_name=company_name,
            is_verified=False,
        )
        db.add(host)
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConflictError(DUPLICATE_EMAIL) from exc
        db.add(
            Company(
                user=host,
                first_name=payload.first_name,
                last_name=payload.last_name,
                role=ROLE_HOST,
                company_name=company_name,
                admin_id=principal.id,
            )
        )

    db.refresh(host)
    logger.info("Admin %s created host %s in %r", principal.id, host.email, company_name)
    return host


# PUBLIC_INTERFACE
def verify_email(db: Session, token: str, settings: Settings) -> bool:
    """
    Marks the token's user as verified. Returns False for a bad token or an
    unknown user.
    """
    user_id = read_verification_token(token, settings)
    if user_id is None:
        return False
    with db.begin():
        user = db.get(User, user_id)
        if user is None:
            return False
        user.is_verified = True
    logger.info("User %s verified their email", user_id)
    return True


# PUBLIC_INTERFACE
def authenticate(db: Session, email: str, password: str, settings: Settings) -> LoginResponse:
    """
    Checks credentials and issues an access token.
    Hosts are created by their admin and skip email verification.
    """
    user = db.scalars(select(User).where(User.email == email)).first()
    if user is None or not verify_password(password, user.password):
        raise AuthenticationError("Invalid email or password.")
    if user.role != ROLE_HOST and not user.is_verified:
        raise ForbiddenError("Please verify your email address before logging in.")

    token = create_access_token(user.id, user.role, settings)
    return LoginResponse(
        token=token,
        user=UserOut(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            company_name=user.company_name,
        ),
    )


# PUBLIC_INTERFACE
def list_company_users(db: Session, principal: Principal) -> List[UserOut]:
    company_name = resolve_company(db, principal)
    users = db.scalars(
        select(User).where(User.company_name == company_name).order_by(User.role, User.name)
    )
    return [
        UserOut(id=u.id, name=u.name, email=u.email, role=u.role, company_name=u.company_name)
        for u in users
    ]


# PUBLIC_INTERFACE
def list_hosts(db: Session, principal: Principal) -> List[HostOut]:
    """
    Hosts selectable on the check-in form: every host of an admin's company,
    or just the calling host.
    """
    if principal.is_admin:
        company_name = resolve_company(db, principal)
        hosts = db.scalars(
            select(User)
            .where(User.role == ROLE_HOST, User.company_name == company_name)
            .order_by(User.name)
        ).all()
    elif principal.is_host:
        host = db.get(User, principal.id)
        hosts = [host] if host is not None else []
    else:
        raise ForbiddenError("Access denied.")
    return [HostOut(id=h.id, name=h.name, email=h.email, company_name=h.company_name) for h in hosts]
