"""HTTP route definitions for the user service."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from schemas import Address, CamelModel, CityStat, Gender, Pagination, Role, UserRecord, UserSummary

from ..config import get_settings
from ..domain import user as domain
from ..domain.contracts import AddressChanges, AddressInput, CreateUserInput, UserChanges
from ..domain.derivation import utc_today
from ..domain.errors import ErrorKind, UserServiceError
from ..domain.reporting import ReportService
from ..domain.service import UserService
from ..security.rate_limiter import FixedWindowRateLimiter
from ..security.redis_rate_limiter import RedisFixedWindowRateLimiter

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class AddressRequest(CamelModel):
    lga: str | None = None
    city: str | None = None
    state: str | None = None


class CreateUserRequest(CamelModel):
    """Payload accepted when registering a user."""

    email: EmailStr
    first_name: str
    last_name: str
    user_name: str | None = None
    dob: date
    phone_number: str | None = None
    gender: Gender = Gender.other
    roles: list[Role] = Field(default_factory=lambda: [Role.user])
    address: AddressRequest | None = None

    @field_validator("dob")
    @classmethod
    def dob_in_past(cls, value: date) -> date:
        if value >= utc_today():
            raise ValueError("Date of birth must be in the past")
        return value


class UpdateUserRequest(CamelModel):
    """Partial update payload; any field not declared here is dropped during parsing."""

    first_name: str | None = None
    last_name: str | None = None
    user_name: str | None = None
    phone_number: str | None = None
    gender: Gender | None = None
    address: AddressRequest | None = None


class UserResponse(BaseModel):
    message: str
    user: UserRecord


class UserListResponse(BaseModel):
    message: str
    users: list[UserRecord]
    pagination: Pagination


class CityStatsResponse(BaseModel):
    message: str
    data: list[CityStat]


settings = get_settings()


def _build_rate_limiter() -> FixedWindowRateLimiter | RedisFixedWindowRateLimiter:
    """Instantiate the configured rate limiter backend, preferring Redis when available."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            import redis

            client = redis.from_url(settings.redis_url)
            # ensure connectivity early to fail fast and fall back
            client.ping()
            logger.info("rate limiter configured for redis backend at %s", settings.redis_url)
            return RedisFixedWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)

    logger.info("rate limiter using in-memory backend")
    return FixedWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


rate_limiter = _build_rate_limiter()


def enforce_rate_limit(request: Request, response: Response) -> None:
    """Count the request against its client address and advertise the remaining quota."""
    client = request.client.host if request.client else "unknown"
    decision = rate_limiter.hit(f"ip:{client}")
    headers = {
        "RateLimit-Limit": str(decision.limit),
        "RateLimit-Remaining": str(decision.remaining),
        "RateLimit-Reset": str(decision.reset_after),
    }
    if not decision.allowed:
        logger.warning("rate limit exceeded for %s", client)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=RATE_LIMIT_MESSAGE,
            headers=headers,
        )
    response.headers.update(headers)


router = APIRouter(prefix="/api/v1/users", tags=["users"], dependencies=[Depends(enforce_rate_limit)])


def get_service(request: Request) -> UserService:
    """Resolve the `UserService` stored on the FastAPI application state."""
    service: UserService = request.app.state.user_service
    return service


def get_report_service(request: Request) -> ReportService:
    service: ReportService = request.app.state.report_service
    return service


def to_record(user: domain.User) -> UserRecord:
    """Build the wire representation of a domain user."""
    return UserRecord(
        id=user.user_id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        user_name=user.user_name,
        dob=user.dob,
        age=user.age,
        phone_number=user.phone_number,
        gender=user.gender.value,
        roles=[role.value for role in user.roles],
        address=Address(lga=user.address.lga, city=user.address.city, state=user.address.state),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def to_city_stat(stat: domain.CityStat) -> CityStat:
    return CityStat(
        city=stat.city,
        average_age=stat.average_age,
        total_users=stat.total_users,
        users=[
            UserSummary(full_name=item.full_name, city=item.city, gender=item.gender.value, age=item.age)
            for item in stat.users
        ],
    )


@router.post("/create-user", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: CreateUserRequest,
    service: UserService = Depends(get_service),
) -> UserResponse:
    """Register a new user."""
    address = payload.address
    try:
        user = service.create_user(
            CreateUserInput(
                email=payload.email,
                first_name=payload.first_name,
                last_name=payload.last_name,
                dob=payload.dob,
                user_name=payload.user_name,
                phone_number=payload.phone_number,
                gender=domain.Gender(payload.gender.value),
                roles=[domain.UserRole(role.value) for role in payload.roles],
                address=AddressInput(lga=address.lga, city=address.city, state=address.state)
                if address
                else None,
            )
        )
    except UserServiceError as exc:
        raise _http_error(exc) from exc
    return UserResponse(message="User created successfully", user=to_record(user))


@router.put("/update-user/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: UpdateUserRequest,
    service: UserService = Depends(get_service),
) -> UserResponse:
    """Update the allow-listed fields of a user; address parts merge into the stored address."""
    address = payload.address
    changes = UserChanges(
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone_number=payload.phone_number,
        user_name=payload.user_name,
        gender=domain.Gender(payload.gender.value) if payload.gender else None,
        address=AddressChanges(lga=address.lga, city=address.city, state=address.state)
        if address
        else None,
    )
    try:
        user = service.update_user(user_id, changes)
    except UserServiceError as exc:
        raise _http_error(exc) from exc
    return UserResponse(message="User details updated successfully", user=to_record(user))


@router.get("/get-user/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    service: UserService = Depends(get_service),
) -> UserResponse:
    """Retrieve a single user."""
    try:
        user = service.get_user(user_id)
    except UserServiceError as exc:
        raise _http_error(exc) from exc
    return UserResponse(message="User retrieved successfully", user=to_record(user))


@router.get("/get-all-users", response_model=UserListResponse)
def list_users(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    service: UserService = Depends(get_service),
) -> UserListResponse:
    """Return one page of users; unusable ``page``/``limit`` values fall back to the defaults."""
    result = service.list_users(page, limit)
    return UserListResponse(
        message="Users fetched successfully",
        users=[to_record(user) for user in result.items],
        pagination=Pagination(
            current_page=result.page,
            total_pages=result.total_pages,
            total_users=result.total_users,
        ),
    )


@router.delete("/delete-user/{user_id}", response_model=UserResponse)
def delete_user(
    user_id: str,
    service: UserService = Depends(get_service),
) -> UserResponse:
    """Delete a user and echo its last state."""
    try:
        user = service.delete_user(user_id)
    except UserServiceError as exc:
        raise _http_error(exc) from exc
    return UserResponse(message="User deleted successfully", user=to_record(user))


@router.get("/city-stats", response_model=CityStatsResponse)
def city_stats(service: ReportService = Depends(get_report_service)) -> CityStatsResponse:
    """Users grouped by city with their average age, largest groups first."""
    report = service.city_report()
    return CityStatsResponse(
        message="City statistics fetched successfully",
        data=[to_city_stat(stat) for stat in report],
    )


_STATUS_BY_KIND = {
    ErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


def _http_error(exc: UserServiceError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_KIND[exc.kind], detail=exc.message)
