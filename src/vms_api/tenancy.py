"""
Company scope resolution for authenticated principals.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import NotFoundError
from .models import User
from .security import Principal


# PUBLIC_INTERFACE
def resolve_company(db: Session, principal: Principal) -> str:
    """
    Returns the company_name the principal belongs to.
    Admins and hosts are both scoped to their own row's company_name; an
    unset value is a configuration error and reported as NotFoundError.
    """
    company_name = db.scalar(select(User.company_name).where(User.id == principal.id))
    if not company_name:
        raise NotFoundError("Company information not found for this account.")
    return company_name
