import pytest

from portfolio_api.core.exceptions import DuplicateUser, InvalidCredentials, Unauthorized
from portfolio_api.models.user import User
from portfolio_api.services import auth_service


EMAIL = "alice@example.com"
PASSWORD = "correct-horse-battery"


def test_register_then_login(dynamodb):
    token = auth_service.register(EMAIL, PASSWORD)
    registered_id = auth_service.verify(token)

    login_token = auth_service.login(EMAIL, PASSWORD)

    assert auth_service.verify(login_token) == registered_id


def test_register_stores_hash_not_password(dynamodb):
    auth_service.register(EMAIL, PASSWORD)

    user = User.get(EMAIL)
    assert user.password_hash != PASSWORD
    assert PASSWORD not in user.password_hash
    assert user.user_id


def test_register_duplicate_email(dynamodb):
    auth_service.register(EMAIL, PASSWORD)

    with pytest.raises(DuplicateUser):
        auth_service.register(EMAIL, "another-password")


def test_register_duplicate_email_ignores_case(dynamodb):
    auth_service.register(EMAIL, PASSWORD)

    with pytest.raises(DuplicateUser):
        auth_service.register("  Alice@Example.COM ", PASSWORD)


def test_duplicate_registration_keeps_original_user(dynamodb):
    first_id = auth_service.verify(auth_service.register(EMAIL, PASSWORD))

    with pytest.raises(DuplicateUser):
        auth_service.register(EMAIL, "another-password")

    assert User.get(EMAIL).user_id == first_id
    assert auth_service.verify(auth_service.login(EMAIL, PASSWORD)) == first_id


def test_login_wrong_password(dynamodb):
    auth_service.register(EMAIL, PASSWORD)

    with pytest.raises(InvalidCredentials):
        auth_service.login(EMAIL, "wrong-password")


def test_login_unknown_email(dynamodb):
    with pytest.raises(InvalidCredentials):
        auth_service.login("nobody@example.com", PASSWORD)


def test_invalid_credentials_is_unauthorized(dynamodb):
    with pytest.raises(Unauthorized) as exc_info:
        auth_service.login("nobody@example.com", PASSWORD)

    assert exc_info.value.status_code == 401
    assert exc_info.value.error_code == "INVALID_CREDENTIALS"


def test_verify_rejects_garbage():
    with pytest.raises(Unauthorized):
        auth_service.verify("not-a-jwt")
