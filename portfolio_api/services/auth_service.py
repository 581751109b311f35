import uuid

from pynamodb.exceptions import DoesNotExist, PutError

from portfolio_api.core.exceptions import DuplicateUser, InvalidCredentials
from portfolio_api.core.logging_config import get_logger
from portfolio_api.core.secure_logging import mask_email
from portfolio_api.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from portfolio_api.models.user import User

logger = get_logger(__name__)

# Compared against when the email is unknown so both failure paths cost a hash check
_DUMMY_HASH = hash_password(uuid.uuid4().hex)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _is_conditional_failure(error: PutError) -> bool:
    return getattr(error, "cause_response_code", None) == "ConditionalCheckFailedException"


def register(email: str, password: str) -> str:
    """Create a user and return an access token for it."""
    email = _normalize_email(email)
    user = User(
        email=email,
        user_id=str(uuid.uuid4()),
        password_hash=hash_password(password),
    )

    try:
        user.save(condition=User.email.does_not_exist())
    except PutError as e:
        if _is_conditional_failure(e):
            logger.info("Registration rejected, email taken", extra={'email': mask_email(email)})
            raise DuplicateUser()
        raise

    logger.info("User registered", extra={'user_id': user.user_id, 'email': mask_email(email)})
    return create_access_token(user.user_id, email)


def login(email: str, password: str) -> str:
    """Check credentials and return an access token."""
    email = _normalize_email(email)
    try:
        user = User.get(email, consistent_read=True)
    except DoesNotExist:
        verify_password(password, _DUMMY_HASH)
        logger.info("Login failed", extra={'email': mask_email(email), 'reason': 'unknown_email'})
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        logger.info("Login failed", extra={'email': mask_email(email), 'reason': 'bad_password'})
        raise InvalidCredentials()

    return create_access_token(user.user_id, email)


def verify(token: str) -> str:
    """Return the user id embedded in a valid token."""
    return decode_token(token)["sub"]
