import datetime
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from . import accounts, visits
from .config import Settings, configure_logging, get_settings
from .database import Database, get_db
from .errors import AppError
from .mailer import Mailer
from .models import ROLE_ADMIN, ROLE_HOST
from .schemas import (
    CheckinRequest,
    CheckinResponse,
    CompanyRegisterPayload,
    CompanyRegisterResponse,
    HostOut,
    HostRegisterPayload,
    LoginPayload,
    LoginResponse,
    MessageResponse,
    UserOut,
    VisitFilters,
    VisitRecordOut,
)
from .security import (
    Principal,
    create_verification_token,
    get_current_principal,
    get_settings_from_request,
    require_admin,
    require_host,
)

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "auth", "description": "Company registration, email verification and login"},
    {"name": "visitor", "description": "Visitor check-in and check-out"},
    {"name": "admin", "description": "Company users, hosts and the visit log"},
]

# -------------------- Verification pages --------------------

VERIFY_PAGE = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="font-family: Arial, sans-serif; background-color: #f4f7fa; text-align: center; padding: 40px;">
  <h1 style="color: {color};">{heading}</h1>
  <p>{body}</p>
  {action}
  <p style="font-size: 12px; color: #718096;">&copy; {year} Visitor Management System</p>
</body>
</html>
"""


def _verification_page(success: bool, body: str, login_url: str = None) -> HTMLResponse:
    if success:
        title, heading, color = "Email Verification Success", "Email Verified Successfully!", "#2c5282"
        action = f'<a href="{login_url}">Go to Login</a>'
    else:
        title, heading, color = "Email Verification Error", "Verification Failed", "#c53030"
        action = ""
    html = VERIFY_PAGE.format(
        title=title,
        heading=heading,
        color=color,
        body=body,
        action=action,
        year=datetime.date.today().year,
    )
    return HTMLResponse(html, status_code=200 if success else HTTP_400_BAD_REQUEST)


# -------------------- Dependencies --------------------

def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


router = APIRouter(prefix="/api")

# -------------------- Accounts --------------------

# PUBLIC_INTERFACE
@router.post("/registerCompany", response_model=CompanyRegisterResponse, status_code=HTTP_201_CREATED, tags=["auth"])
def register_company(
    payload: CompanyRegisterPayload,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_request),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Registers a company and its admin user.
    A verification email is sent after the response; admins cannot log in
    until they follow the link.
    """
    admin = accounts.register_company(db, payload)
    token = create_verification_token(admin.id, settings)
    background_tasks.add_task(mailer.send_verification_email, admin.email, payload.first_name, token)
    return CompanyRegisterResponse(
        id=admin.id,
        name=admin.name,
        email=admin.email,
        role=ROLE_ADMIN,
        company_name=admin.company_name,
    )


# PUBLIC_INTERFACE
@router.post("/register", response_model=UserOut, status_code=HTTP_201_CREATED, tags=["admin"])
def register_host(
    payload: HostRegisterPayload,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Creates a host user in the calling admin's company.
    """
    host = accounts.register_host(db, principal, payload)
    return UserOut(id=host.id, name=host.name, email=host.email, role=ROLE_HOST, company_name=host.company_name)


# PUBLIC_INTERFACE
@router.get("/verify-email", response_class=HTMLResponse, tags=["auth"])
def verify_email(
    token: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_request),
):
    """
    Email verification link target. Responds with an HTML page.
    """
    if not token:
        return _verification_page(
            False, "Verification token is missing. Please check the link or request a new verification email."
        )
    if not accounts.verify_email(db, token, settings):
        return _verification_page(
            False, "The verification link is invalid or has expired. Please request a new verification email."
        )
    return _verification_page(
        True,
        "Your email has been verified, and your account is now active. "
        "You can now log in to the Visitor Management System.",
        login_url=f"{settings.frontend_url.rstrip('/')}/login",
    )


# PUBLIC_INTERFACE
@router.post("/login", response_model=LoginResponse, tags=["auth"])
def login(
    payload: LoginPayload,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_request),
):
    """
    Authenticates a user and returns a bearer token plus profile.
    """
    return accounts.authenticate(db, payload.email, payload.password, settings)


# PUBLIC_INTERFACE
@router.get("/users", response_model=List[UserOut], tags=["admin"])
def get_company_users(principal: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    """
    List all users of the admin's company.
    """
    return accounts.list_company_users(db, principal)


# PUBLIC_INTERFACE
@router.get("/hosts", response_model=List[HostOut], tags=["admin"])
def get_hosts(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """
    List hosts for the check-in dropdown.
    """
    return accounts.list_hosts(db, principal)


# -------------------- Visits --------------------

# PUBLIC_INTERFACE
@router.post("/visits", response_model=CheckinResponse, status_code=HTTP_201_CREATED, tags=["visitor"])
def visitor_checkin(
    payload: CheckinRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Checks a visitor in to a host. A visitor already checked in to the
    host's company (same email, not yet checked out) is rejected with 409.
    """
    visit_id = visits.check_in(db, principal, payload)
    return CheckinResponse(message="Check-in successful!", visit_id=visit_id)


# PUBLIC_INTERFACE
@router.get("/visits", response_model=List[VisitRecordOut], tags=["admin"])
def get_company_visits(
    host_id: Optional[int] = Query(None, alias="hostId"),
    start_date: Optional[datetime.date] = Query(None, alias="startDate"),
    end_date: Optional[datetime.date] = Query(None, alias="endDate"),
    host_name: Optional[str] = Query(None, alias="hostName"),
    visitor_name: Optional[str] = Query(None, alias="visitorName"),
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Visit log of the admin's company (most recent first), with optional filters.
    """
    filters = VisitFilters(
        host_id=host_id,
        start_date=start_date,
        end_date=end_date,
        host_name=host_name,
        visitor_name=visitor_name,
    )
    return visits.list_company_visits(db, principal, filters)


# PUBLIC_INTERFACE
@router.get("/host-visits", response_model=List[VisitRecordOut], tags=["visitor"])
def get_host_visits(principal: Principal = Depends(require_host), db: Session = Depends(get_db)):
    """
    Visits received by the calling host (most recent first).
    """
    return visits.list_host_visits(db, principal)


# PUBLIC_INTERFACE
@router.put("/visits/{visit_id}/checkout", response_model=MessageResponse, tags=["visitor"])
def visitor_checkout(
    visit_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    Checks a visitor out. Visits already checked out report 404.
    """
    visits.check_out(db, principal, visit_id)
    return MessageResponse(message="Check-out successful.")


# -------------------- Error handlers --------------------

async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse({"message": exc.message}, status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        {"message": "Missing or invalid fields in request.", "errors": errors},
        status_code=HTTP_400_BAD_REQUEST,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse({"message": "Internal server error."}, status_code=HTTP_500_INTERNAL_SERVER_ERROR)


# -------------------- Application --------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    db = Database(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        isolation_level=settings.db_isolation_level,
    )
    if settings.create_tables:
        db.create_all()
    app.state.db = db
    logger.info("Database engine ready (%s)", db.engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        db.dispose()
        logger.info("Database engine disposed")


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, mailer: Optional[Mailer] = None) -> FastAPI:
    """
    Builds the API application. Run with
    ``uvicorn vms_api.main:create_app --factory``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Visitor Management Backend",
        description="API for company-scoped visitor check-in/check-out, host management and visit logs.",
        version="1.0.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.mailer = mailer or Mailer(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],  # Restrict to frontend origin
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # PUBLIC_INTERFACE
    @app.get("/", tags=["admin"])
    def health_check(request: Request):
        """
        Health check endpoint.
        ---
        Returns {"message": "Healthy"} if API and database are up.
        """
        if not request.app.state.db.ping():
            return JSONResponse({"message": "Database unavailable"}, status_code=HTTP_500_INTERNAL_SERVER_ERROR)
        return {"message": "Healthy"}

    app.include_router(router)
    return app
