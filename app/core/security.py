"""
Request-scoped identity derived from headers set by the API gateway.

Authentication happens upstream; this module only trusts the gateway
headers and fails closed (no identity) when they are missing and the
caller is not flagged as an internal service.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional
import logging

from fastapi import Request

from app.core.exceptions import AuthenticationRequiredError, AuthorizationDeniedError

logger = logging.getLogger(__name__)

# Headers set by the gateway when the caller presented a valid JWT
H_USER_ID = "X-User-ID"
H_USER_EMAIL = "X-User-Email"
H_USER_ROLE = "X-User-Role"
H_USER_PROGRAMS = "X-User-Programs"

# Service-to-service flags
H_INTERNAL = "X-Internal-Request"
H_SERVICE_REQ = "X-Service-Request"

ROLE_ADMIN = "ADMIN"
ROLE_COORDINATOR = "COORDINATOR"
ALL_PROGRAMS = "*"

SYSTEM_USER_ID = "system"
SYSTEM_USER_EMAIL = "system@local"


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    email: Optional[str] = None
    role: str = ""
    programs: FrozenSet[str] = field(default_factory=frozenset)

    def is_admin(self) -> bool:
        return self.role.upper() == ROLE_ADMIN

    def is_coordinator(self) -> bool:
        return self.role.upper() == ROLE_COORDINATOR

    def has_access_to_program(self, program_id: str) -> bool:
        if not self.programs:
            return False
        return ALL_PROGRAMS in self.programs or program_id in self.programs


def system_user() -> AuthenticatedUser:
    return AuthenticatedUser(
        user_id=SYSTEM_USER_ID,
        email=SYSTEM_USER_EMAIL,
        role=ROLE_ADMIN,
        programs=frozenset({ALL_PROGRAMS}),
    )


def parse_programs(raw: Optional[str]) -> FrozenSet[str]:
    if not raw:
        return frozenset()
    return frozenset(p.strip() for p in raw.split(",") if p.strip())


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


class AuthContext:
    """Holds the identity of a single request; cleared when the request ends"""

    def __init__(self):
        self._user: Optional[AuthenticatedUser] = None

    @property
    def populated(self) -> bool:
        return self._user is not None

    def populate(self, headers: Mapping[str, str], path: str = "") -> None:
        if self._user is not None:
            return

        user_id = _header(headers, H_USER_ID)
        is_internal = (
            (_header(headers, H_INTERNAL) or "").lower() == "true"
            or (_header(headers, H_SERVICE_REQ) or "").lower() == "true"
        )

        if user_id is None and is_internal:
            self._user = system_user()
            logger.info(f"Injected SYSTEM identity for internal request {path or ''}")
            return

        if user_id is None:
            logger.debug(f"No user ID in headers for {path or 'request'}")
            return

        self._user = AuthenticatedUser(
            user_id=user_id,
            email=_header(headers, H_USER_EMAIL),
            role=_header(headers, H_USER_ROLE) or "",
            programs=parse_programs(_header(headers, H_USER_PROGRAMS)),
        )

    def current_user(self) -> Optional[AuthenticatedUser]:
        return self._user

    def require_authentication(self) -> AuthenticatedUser:
        if self._user is None:
            raise AuthenticationRequiredError()
        return self._user

    def require_admin(self) -> AuthenticatedUser:
        user = self.require_authentication()
        if not user.is_admin():
            logger.warning(f"ADMIN REQUIRED: user {user.user_id} ({user.role}) denied")
            raise AuthorizationDeniedError("Admin privileges required")
        return user

    def clear(self) -> None:
        self._user = None


def get_auth_context(request: Request):
    """Dependency yielding the context populated by the request middleware"""
    auth = getattr(request.state, "auth", None)
    if auth is not None:
        yield auth
        return

    # Route mounted without the middleware; the context lives for this request only
    auth = AuthContext()
    auth.populate(request.headers, request.url.path)
    request.state.auth = auth
    try:
        yield auth
    finally:
        auth.clear()


# Permission predicates used by the routers
def can_view_program(user: AuthenticatedUser, program_id: str) -> bool:
    return user.is_admin() or user.is_coordinator() or user.has_access_to_program(program_id)


def require_admin_or_coordinator(auth: AuthContext, action: str) -> AuthenticatedUser:
    user = auth.require_authentication()
    if not (user.is_admin() or user.is_coordinator()):
        logger.warning(f"UNAUTHORIZED: user {user.user_id} ({user.role}) attempted to {action}")
        raise AuthorizationDeniedError(
            f"Only coordinators and administrators can {action}"
        )
    return user


def require_program_manager(auth: AuthContext, program_id: str) -> AuthenticatedUser:
    """ADMIN, or COORDINATOR with access to this specific program"""
    user = auth.require_authentication()
    if user.is_admin():
        return user
    if not (user.is_coordinator() and user.has_access_to_program(program_id)):
        logger.warning(f"UPDATE DENIED: user {user.user_id} ({user.role}) on program {program_id}")
        raise AuthorizationDeniedError(
            "You don't have permission to modify this program"
        )
    return user


def require_program_reader(auth: AuthContext, program_id: str) -> AuthenticatedUser:
    user = auth.require_authentication()
    if not can_view_program(user, program_id):
        logger.warning(f"ACCESS DENIED: user {user.user_id} attempted to access program {program_id}")
        raise AuthorizationDeniedError("You don't have access to this program")
    return user
