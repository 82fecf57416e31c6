"""
Company-scoped check-in, check-out and visit log queries.

A visitor may hold at most one open visit per company (by email). The rule
is checked inside the check-in transaction and backed by the
``uq_visits_active_visitor_company`` partial unique index, so two racing
check-ins cannot both commit.
"""

import datetime
import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .models import ROLE_HOST, User, Visit, Visitor
from .schemas import CheckinRequest, VisitFilters, VisitRecordOut
from .security import Principal
from .tenancy import resolve_company

logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _already_checked_in(company_name: str) -> ConflictError:
    return ConflictError(
        f"This visitor is already checked in to {company_name} and has not checked out yet. "
        "Please check out first before checking in again to the same company."
    )


def _resolve_host(db: Session, principal: Principal, host_name: str) -> User:
    if principal.is_host:
        host = db.get(User, principal.id)
        if host is None or host.name.lower() != host_name.strip().lower():
            raise ForbiddenError("Hosts can only check in visitors for themselves.")
        return host

    if principal.is_admin:
        company_name = resolve_company(db, principal)
        host = db.scalars(
            select(User)
            .where(
                func.lower(User.name) == host_name.strip().lower(),
                User.role == ROLE_HOST,
                User.company_name == company_name,
            )
            .order_by(User.id)
        ).first()
        if host is None:
            raise NotFoundError("Host not found in your company.")
        return host

    raise ForbiddenError("Unauthorized access.")


# PUBLIC_INTERFACE
def check_in(db: Session, principal: Principal, payload: CheckinRequest) -> int:
    """
    Creates a Visitor and its Visit in one transaction and returns the visit id.

    Raises:
        ForbiddenError: a host checking in a visitor for someone else.
        NotFoundError: unknown host, or host without a company.
        ConflictError: the visitor already has an open visit at the host's company.
    """
    if not payload.host_name.strip():
        raise ValidationError("Missing required fields for check-in.")

    with db.begin():
        host = _resolve_host(db, principal, payload.host_name)
        if not host.company_name:
            raise NotFoundError("Host company information not found.")
        company_name = host.company_name
        host_id = host.id

        active_visit_id = db.scalar(
            select(Visit.id)
            .join(Visitor, Visit.visitor_id == Visitor.id)
            .join(User, Visit.host_id == User.id)
            .where(
                func.lower(Visitor.email) == payload.email,
                User.company_name == company_name,
                Visit.check_out_time.is_(None),
            )
            .limit(1)
        )
        if active_visit_id is not None:
            logger.warning("Rejected duplicate check-in for %s at %s (open visit %s)",
                           payload.email, company_name, active_visit_id)
            raise _already_checked_in(company_name)

        visitor = Visitor(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            designation=payload.designation,
            company=payload.company,
            company_tel=payload.company_tel,
            website=payload.website,
            address=payload.address,
            photo=payload.photo,
            id_card_photo=payload.id_card_photo,
            id_card_number=payload.id_card_number,
        )
        visit = Visit(
            visitor=visitor,
            host_id=host_id,
            reason=payload.reason,
            items_carried=payload.items_carried,
            check_in_time=utcnow(),
            visitor_email=payload.email,
            company_name=company_name,
        )
        db.add_all([visitor, visit])
        try:
            db.flush()
        except IntegrityError as exc:
            logger.warning("Concurrent check-in for %s at %s lost the race", payload.email, company_name)
            raise _already_checked_in(company_name) from exc
        visit_id = visit.id

    logger.info("Visit %s checked in: %s -> host %s (%s)", visit_id, payload.email, host_id, company_name)
    return visit_id


# PUBLIC_INTERFACE
def check_out(db: Session, principal: Principal, visit_id: int) -> None:
    """
    Sets check_out_time on an open visit.

    A host may only close their own visits. An admin may close any visit
    whose host belongs to their company. A visit that does not exist (for
    the caller) and one that is already closed both raise NotFoundError.
    """
    with db.begin():
        stmt = (
            update(Visit)
            .where(Visit.id == visit_id, Visit.check_out_time.is_(None))
            .values(check_out_time=utcnow())
            .execution_options(synchronize_session=False)
        )
        if principal.is_host:
            owner_id = db.scalar(select(Visit.host_id).where(Visit.id == visit_id))
            if owner_id is None or owner_id != principal.id:
                raise ForbiddenError("Hosts can only check out their own visitors.")
            stmt = stmt.where(Visit.host_id == principal.id)
        elif principal.is_admin:
            company_name = resolve_company(db, principal)
            company_hosts = select(User.id).where(User.company_name == company_name)
            stmt = stmt.where(Visit.host_id.in_(company_hosts))
        else:
            raise ForbiddenError("Unauthorized access.")

        result = db.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError("Visit not found or visitor already checked out.")

    logger.info("Visit %s checked out by user %s", visit_id, principal.id)


def _visit_log_query(with_company: bool = False):
    columns = [
        Visit.id,
        Visit.reason,
        Visit.items_carried,
        Visit.check_in_time,
        Visit.check_out_time,
        Visitor.id.label("visitor_id"),
        Visitor.name.label("visitor_name"),
        Visitor.email.label("visitor_email"),
        Visitor.phone.label("visitor_phone"),
        Visitor.designation,
        Visitor.company,
        Visitor.photo.label("visitor_photo"),
        Visitor.id_card_photo,
        Visitor.id_card_number,
        User.id.label("host_id"),
        User.name.label("host_name"),
    ]
    if with_company:
        columns.append(User.company_name.label("host_company"))
    return (
        select(*columns)
        .join(Visitor, Visit.visitor_id == Visitor.id)
        .join(User, Visit.host_id == User.id)
    )


def _start_of_day(day: datetime.date) -> datetime.datetime:
    return datetime.datetime.combine(day, datetime.time.min, tzinfo=datetime.timezone.utc)


# PUBLIC_INTERFACE
def list_company_visits(db: Session, principal: Principal, filters: Optional[VisitFilters] = None) -> List[VisitRecordOut]:
    """
    Visit log for an admin's company, newest first.
    Filters are combined with AND; the date range is inclusive and measured
    on the UTC calendar date of check_in_time.
    """
    filters = filters or VisitFilters()
    company_name = resolve_company(db, principal)

    query = _visit_log_query(with_company=True).where(User.company_name == company_name)
    if filters.host_id is not None:
        query = query.where(Visit.host_id == filters.host_id)
    if filters.start_date is not None:
        query = query.where(Visit.check_in_time >= _start_of_day(filters.start_date))
    if filters.end_date is not None:
        next_day = filters.end_date + datetime.timedelta(days=1)
        query = query.where(Visit.check_in_time < _start_of_day(next_day))
    if filters.host_name:
        query = query.where(User.name.icontains(filters.host_name, autoescape=True))
    if filters.visitor_name:
        query = query.where(Visitor.name.icontains(filters.visitor_name, autoescape=True))

    query = query.order_by(Visit.check_in_time.desc(), Visit.id.desc())
    return [VisitRecordOut.model_validate(dict(row._mapping)) for row in db.execute(query)]


# PUBLIC_INTERFACE
def list_host_visits(db: Session, principal: Principal) -> List[VisitRecordOut]:
    """Visits received by the calling host, newest first."""
    query = (
        _visit_log_query()
        .where(Visit.host_id == principal.id)
        .order_by(Visit.check_in_time.desc(), Visit.id.desc())
    )
    return [VisitRecordOut.model_validate(dict(row._mapping)) for row in db.execute(query)]
