"""Client for the User Service, used to resolve educational area leaders.

Lookups never raise on remote trouble: a 404 means "no such user" and any
other failure is logged and reported as None, leaving the caller to decide
whether a missing user is an error.
"""
import logging
import time
from typing import Optional

import requests

from app.core import config
from app.core.exceptions import InvalidProgramDataError
from app.schemas.user import UserRecord

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        base_url: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or config.USER_SERVICE_URL).rstrip("/")
        self.timeout = (
            connect_timeout if connect_timeout is not None else config.USER_SERVICE_CONNECT_TIMEOUT,
            read_timeout if read_timeout is not None else config.USER_SERVICE_READ_TIMEOUT,
        )
        self.max_retries = max(1, max_retries if max_retries is not None else config.USER_SERVICE_MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else config.USER_SERVICE_RETRY_DELAY
        self.session = session or requests.Session()
        logger.info(f"UserService initialized with URL: {self.base_url}")

    def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        if user_id is None or not user_id.strip():
            raise InvalidProgramDataError("The user id cannot be null or empty")

        url = f"{self.base_url}/{user_id}"
        logger.debug(f"Fetching user by ID: {user_id} from URL: {url}")

        response = self._get_with_retries(url)
        if response is None:
            return None

        if response.status_code == 404:
            logger.debug(f"User not found with ID: {user_id}")
            return None
        if not response.ok:
            logger.warning(f"HTTP error while fetching user {user_id}: {response.status_code}")
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning(f"Non-JSON response from User Service for ID: {user_id}")
            return None

        if not isinstance(payload, dict) or not str(payload.get("idUser") or "").strip():
            logger.warning(f"Unexpected response format from User Service for ID: {user_id}")
            return None

        user = UserRecord(
            id_user=payload["idUser"],
            name=payload.get("name"),
            email=payload.get("email"),
            phone=payload.get("phone"),
        )
        logger.debug(f"Successfully retrieved user: {user.id_user}")
        return user

    def _get_with_retries(self, url: str) -> Optional[requests.Response]:
        """GET with bounded retries on transport errors and 5xx answers"""
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.get(url, timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as e:
                logger.warning(f"User Service call failed (attempt {attempt}/{self.max_retries}): {str(e)}")
            except requests.RequestException as e:
                logger.error(f"Error calling User Service at {url}: {str(e)}")
                return None
            else:
                if response.status_code < 500 or attempt == self.max_retries:
                    return response
                logger.warning(f"User Service answered {response.status_code} (attempt {attempt}/{self.max_retries})")

            if attempt < self.max_retries and self.retry_delay > 0:
                time.sleep(self.retry_delay)

        logger.error(f"User Service unavailable after {self.max_retries} attempts: {url}")
        return None


_user_service: Optional[UserService] = None


def get_user_service() -> UserService:
    """Dependency returning a process-wide client (one pooled HTTP session)"""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
