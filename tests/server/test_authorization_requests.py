from tests.doubles import (
    TEST_CLIENT_ID,
    TEST_CLIENT_SECRET,
    TEST_REDIRECT_URI,
    SpyAuthorizationCodeGrant,
    SpyAuthorizationHandler,
    SpyClient,
    make_request,
)
from turnstile.authorization_server import AuthorizationServer, ServerOptions
from turnstile.models.clients import SimpleClient
from turnstile.models.errors import (
    ClientNotFoundError,
    ErrorType,
    InvalidRedirectURIError,
    InvalidRequestMethodError,
    invalid_request,
)
from turnstile.models.requests import AuthorizationRequest
from turnstile.primitives.scopes import allow_scopes
from turnstile.services.clients import InMemoryClientRepository
from turnstile.services.code_flow import CodeResponseHandler


def authorize_query(**overrides: str) -> dict[str, str]:
    query = {
        "response_type": "code",
        "client_id": TEST_CLIENT_ID,
        "redirect_uri": TEST_REDIRECT_URI,
        "state": "xyz",
    }
    query.update(overrides)
    return query


class TestValidateAuthorizationRequest:
    def setup_method(self):
        # Arrange
        self.clients = InMemoryClientRepository()
        self.client = SimpleClient.confidential(
            TEST_CLIENT_ID, TEST_CLIENT_SECRET, [TEST_REDIRECT_URI]
        )
        self.clients.add(self.client)
        self.handler = SpyAuthorizationHandler(response_type="code")
        self.options = ServerOptions().with_authorization_handler(self.handler)

    def server(self) -> AuthorizationServer:
        return AuthorizationServer(self.clients, self.options)

    async def test_valid_request_is_accepted(self):
        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query(scope="read write"))
        )

        # Assert
        assert error is None
        assert auth_request.client_id == TEST_CLIENT_ID
        assert auth_request.final_redirect_uri == TEST_REDIRECT_URI
        assert auth_request.state == "xyz"
        assert auth_request.scope == ("read", "write")
        assert self.handler.calls == [(self.client, auth_request)]

    async def test_non_get_request_is_not_redirectable(self):
        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(method="POST", query=authorize_query())
        )

        # Assert
        assert auth_request is None
        assert error.error_type == ErrorType.INVALID_REQUEST
        assert error.caused_by(InvalidRequestMethodError)

    async def test_unknown_client_is_not_redirectable(self):
        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query(client_id="someone-else"))
        )

        # Assert
        assert auth_request is None
        assert error.error_type == ErrorType.INVALID_CLIENT
        assert error.caused_by(ClientNotFoundError)

    async def test_repository_error_is_not_redirectable(self):
        # Arrange
        expected = RuntimeError("error from client")
        self.clients.add_error(TEST_CLIENT_ID, expected)

        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query())
        )

        # Assert
        assert auth_request is None
        assert error.error_type == ErrorType.SERVER_ERROR
        assert error.caused_by(expected)

    async def test_unregistered_redirect_uri_is_not_redirectable(self):
        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query(redirect_uri="https://evil.example.com/cb"))
        )

        # Assert
        assert auth_request is None
        assert error.error_type == ErrorType.INVALID_CLIENT
        assert error.caused_by(InvalidRedirectURIError)
        assert self.handler.calls == []

    async def test_unsupported_response_type_is_redirectable(self):
        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query(response_type="code id_token"))
        )

        # Assert
        assert auth_request.final_redirect_uri == TEST_REDIRECT_URI
        assert error.error_type == ErrorType.UNSUPPORTED_RESPONSE_TYPE
        assert "id_token" in error.description
        assert self.handler.calls == []

    async def test_client_can_refuse_response_type(self):
        # Arrange
        client = SpyClient(allows_response_type_return=False)
        self.clients.add(client)

        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query())
        )

        # Assert
        assert auth_request is not None
        assert error.error_type == ErrorType.UNAUTHORIZED_CLIENT
        assert client.allows_response_type_calls == [("code",)]
        assert self.handler.calls == []

    async def test_client_validated_redirect_uri_is_used(self):
        # Arrange
        self.clients.add(SpyClient(valid_redirect_uri_return="https://example.com/final"))

        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query())
        )

        # Assert
        assert error is None
        assert auth_request.redirect_uri == TEST_REDIRECT_URI
        assert auth_request.final_redirect_uri == "https://example.com/final"

    async def test_client_accepting_no_redirect_uri_is_not_redirectable(self):
        # Arrange
        self.clients.add(SpyClient(valid_redirect_uri_return=""))

        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query={"response_type": "code", "client_id": TEST_CLIENT_ID})
        )

        # Assert
        assert auth_request is None
        assert error.error_type == ErrorType.INVALID_CLIENT
        assert error.caused_by(InvalidRedirectURIError)
        assert self.handler.calls == []

    async def test_rejected_scope_is_redirectable(self):
        # Arrange
        self.options.with_scope_validator(allow_scopes("read"))

        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query(scope="read admin"))
        )

        # Assert
        assert auth_request.is_redirectable()
        assert error.error_type == ErrorType.INVALID_SCOPE
        assert error.description == "invalid scopes: admin"
        assert self.handler.calls == []

    async def test_handler_oauth_error_is_returned_unchanged(self):
        # Arrange
        expected = invalid_request("nonce is required")
        self.handler.error = expected

        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query())
        )

        # Assert
        assert auth_request.is_redirectable()
        assert error is expected

    async def test_handler_failure_is_server_error_keeping_cause(self):
        # Arrange
        expected = RuntimeError("handler exploded")
        self.handler.error = expected

        # Act
        auth_request, error = await self.server().validate_authorization_request(
            make_request(query=authorize_query())
        )

        # Assert
        assert auth_request.is_redirectable()
        assert error.error_type == ErrorType.SERVER_ERROR
        assert error.description == ""
        assert error.caused_by(expected)

    async def test_code_flow_without_pkce(self):
        # Arrange
        server = AuthorizationServer(
            self.clients,
            ServerOptions().with_authorization_handler(CodeResponseHandler()),
        )

        # Act
        auth_request, error = await server.validate_authorization_request(
            make_request(query=authorize_query(redirect_uri=""))
        )

        # Assert
        assert error is None
        assert auth_request.redirect_uri == ""
        assert auth_request.final_redirect_uri == TEST_REDIRECT_URI
        assert auth_request.code_challenge == ""
        assert auth_request.code_challenge_method == ""

    async def test_code_flow_rejects_unsupported_challenge_method(self):
        # Arrange
        server = AuthorizationServer(
            self.clients,
            ServerOptions().with_authorization_handler(CodeResponseHandler()),
        )
        query = authorize_query(code_challenge="a" * 43, code_challenge_method="S512")

        # Act
        auth_request, error = await server.validate_authorization_request(
            make_request(query=query)
        )

        # Assert
        assert auth_request.is_redirectable()
        assert error.error_type == ErrorType.INVALID_REQUEST


class TestDenyAuthorizationRequest:
    def test_builds_access_denied(self):
        # Arrange
        server = AuthorizationServer(InMemoryClientRepository())
        request = AuthorizationRequest(
            client_id=TEST_CLIENT_ID, final_redirect_uri=TEST_REDIRECT_URI
        )

        # Act
        error = server.deny_authorization_request(request, "user said no")

        # Assert
        assert error.error_type == ErrorType.ACCESS_DENIED
        assert error.description == "user said no"


class TestServerOptions:
    async def test_options_are_copied_at_construction(self):
        # Arrange
        clients = InMemoryClientRepository()
        clients.add(
            SimpleClient.confidential(TEST_CLIENT_ID, TEST_CLIENT_SECRET, [TEST_REDIRECT_URI])
        )
        options = ServerOptions()
        server = AuthorizationServer(clients, options)

        # Act
        options.with_authorization_handler(SpyAuthorizationHandler(response_type="code"))
        _, error = await server.validate_authorization_request(
            make_request(query=authorize_query())
        )

        # Assert
        assert "code" not in server.authorization_handlers
        assert error.error_type == ErrorType.UNSUPPORTED_RESPONSE_TYPE

    def test_grant_with_response_type_is_registered_as_handler(self):
        # Arrange
        grant = SpyAuthorizationCodeGrant()

        # Act
        server = AuthorizationServer(
            InMemoryClientRepository(), ServerOptions().with_grant(grant)
        )

        # Assert
        assert server.grants["authorization_code"] is grant
        assert server.authorization_handlers["code"] is grant

    def test_later_registration_wins(self):
        # Arrange
        first = SpyAuthorizationHandler(response_type="code")
        second = SpyAuthorizationHandler(response_type="code")

        # Act
        options = (
            ServerOptions()
            .with_authorization_handler(first)
            .with_authorization_handler(second)
        )

        # Assert
        assert options.authorization_handlers == {"code": second}
