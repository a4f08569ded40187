from abc import ABC, abstractmethod
from functools import wraps
from typing import Optional

from flask_login import LoginManager, current_user

from api_responses import error_response, ErrorCode
from repositories.user_repository import UserRepository
import logging

# Retrieve main logger
logger = logging.getLogger("main")

login_manager = LoginManager()


class IdentityProvider(ABC):
    """Answers "who is the current user?" for services that act on behalf of one"""

    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        """Remote identity id of the signed-in user, or None"""


class FlaskLoginIdentityProvider(IdentityProvider):
    """Identity from the request's authenticated flask_login user"""

    def current_user_id(self) -> Optional[str]:
        try:
            if current_user and current_user.is_authenticated:
                return current_user.uid
        except RuntimeError:
            # Outside a request context (worker thread, background job)
            return None
        return None


class StaticIdentityProvider(IdentityProvider):
    """Fixed identity, used by background jobs and tests"""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id

    def current_user_id(self) -> Optional[str]:
        return self.user_id


def check_api_token(req):
    """
    Validate Bearer token from Authorization header.
    Returns: (success, error, user_object)
    """
    auth_header = req.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return False, "Missing or invalid token", None

    token_str = auth_header.split(" ", 1)[1].strip()
    user = UserRepository.get_user_by_token(token_str)
    if user:
        return True, None, user
    return False, "Invalid token", None


@login_manager.user_loader
def load_user(user_id):
    return UserRepository.get_by_id(int(user_id))


@login_manager.request_loader
def load_user_from_request(req):
    success, error, user = check_api_token(req)
    if not success and req.headers.get("Authorization"):
        logger.warning(f"Rejected API token: {error}")
    return user


@login_manager.unauthorized_handler
def unauthorized_json():
    return error_response(ErrorCode.UNAUTHORIZED, message="Authentication required", status_code=401)


def token_required(f):
    """Reject the request unless a valid bearer token resolved a user"""

    @wraps(f)
    def decorated_view(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        return f(*args, **kwargs)

    return decorated_view
