import pytest

from turnstile.models.errors import ErrorType, OAuthError
from turnstile.primitives.scopes import ScopeValidator, allow_all_scopes, allow_scopes


class TestAllowAllScopes:
    def test_accepts_anything(self):
        # Act & Assert - no exception
        allow_all_scopes().validate_scopes(["read", "write", "admin"])

    def test_satisfies_protocol(self):
        assert isinstance(allow_all_scopes(), ScopeValidator)


class TestAllowScopes:
    def test_accepts_known_scopes(self):
        allow_scopes("read", "write").validate_scopes(["write", "read"])

    def test_accepts_empty_request(self):
        allow_scopes("read").validate_scopes([])

    def test_rejects_unknown_scopes_in_request_order(self):
        # Arrange
        validator = allow_scopes("read")

        # Act
        with pytest.raises(OAuthError) as exc_info:
            validator.validate_scopes(["write", "read", "admin"])

        # Assert
        assert exc_info.value.error_type == ErrorType.INVALID_SCOPE
        assert exc_info.value.description == "invalid scopes: write admin"
