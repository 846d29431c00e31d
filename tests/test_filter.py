"""Tests for the login filter."""

import threading

import pytest

from oauth2login.core import (
    AuthenticationAttempt,
    CallbackMatcher,
    CallbackRequest,
    ClientRegistration,
    HttpAuthenticationEngine,
    LoginConfig,
    LoginFilter,
    build_login_filter,
)
from oauth2login.core.tokens import AuthenticatedPrincipal


def _next(request):
    return ("next", request.path)


class TestPassThrough:
    """Tests for requests that are not login callbacks."""

    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/"),
            ("GET", "/login/oauth2/code"),
            ("GET", "/login/oauth2/code/github/extra"),
            ("POST", "/login/oauth2/code/github"),
        ],
    )
    def test_non_callbacks_pass_through(
        self, login_filter, store, engine, success_handler, failure_handler, session, make_callback, method, path
    ):
        """Test non-callbacks reach the next handler and touch nothing."""
        session["existing"] = "value"
        request = make_callback({"code": "C", "state": "S1"}, path=path, method=method)

        assert login_filter.handle(request, _next) == ("next", path)
        assert not login_filter.requires_authentication(request)
        assert store.lookups == []
        assert engine.calls == []
        assert success_handler.principals == []
        assert failure_handler.errors == []
        assert session == {"existing": "value"}
        assert request.security_context.authentication is None


class TestCallbackScenarios:
    """End-to-end scenarios through the filter."""

    def test_github_success(
        self, login_filter, store, engine, success_handler, failure_handler, session, make_authorization_request, make_callback
    ):
        """Test a valid GitHub callback authenticates the user."""
        store.save(make_authorization_request(state="S1"), session)
        request = make_callback({"code": "C", "state": "S1"})

        response = login_filter.handle(request, _next)

        assert response == ("success", "octocat")
        assert engine.calls[0].authorization_code == "C"
        assert len(success_handler.principals) == 1
        assert success_handler.principals[0].principal_name() == "octocat"
        assert failure_handler.errors == []
        assert request.security_context.authentication is success_handler.principals[0]

    def test_provider_error(
        self, login_filter, store, engine, success_handler, failure_handler, session, make_authorization_request, make_callback
    ):
        """Test a provider error reaches the failure handler verbatim."""
        store.save(make_authorization_request(state="S1"), session)

        response = login_filter.handle(make_callback({"error": "invalid_grant", "state": "S1"}), _next)

        assert response == ("failure", "invalid_grant")
        assert engine.calls == []
        assert store.lookups == []
        assert success_handler.principals == []

    def test_unknown_state(self, login_filter, engine, failure_handler, make_callback):
        response = login_filter.handle(make_callback({"code": "C", "state": "UNKNOWN"}), _next)

        assert response == ("failure", "authorization_request_not_found")
        assert failure_handler.errors[0].error_code == "authorization_request_not_found"
        assert engine.calls == []

    def test_replay_is_rejected(
        self, login_filter, store, engine, success_handler, failure_handler, session, make_authorization_request, make_callback
    ):
        """Test replaying a successful callback fails."""
        store.save(make_authorization_request(state="S1"), session)

        first = login_filter.handle(make_callback({"code": "C", "state": "S1"}), _next)
        second = login_filter.handle(make_callback({"code": "C", "state": "S1"}), _next)

        assert first == ("success", "octocat")
        assert second == ("failure", "authorization_request_not_found")
        assert len(engine.calls) == 1
        assert len(success_handler.principals) == 1

    def test_success_handler_gets_engine_principal(
        self, login_filter, store, engine, success_handler, session, make_authorization_request, make_callback
    ):
        store.save(make_authorization_request(), session)
        engine.attributes = {"id": 1, "login": "hubot", "name": "Hubot"}

        login_filter.handle(make_callback({"code": "C", "state": "S1"}), _next)

        principal = success_handler.principals[0]
        assert principal.principal.attributes["name"] == "Hubot"
        assert principal.principal_name() == "hubot"


class TestSecurityContext:
    """Tests for the request-scoped security context."""

    def test_cleared_on_failure(self, login_filter, make_callback):
        """Test a failed callback leaves no authentication behind."""
        request = make_callback({"code": "C", "state": "UNKNOWN"})
        request.security_context.authentication = AuthenticatedPrincipal(
            principal=None, authorities=(), registration_id="stale"
        )

        login_filter.handle(request, _next)

        assert request.security_context.authentication is None
        assert not request.security_context.is_authenticated

    def test_cleared_when_exception_escapes(
        self, login_filter, store, engine, session, make_authorization_request, make_callback
    ):
        store.save(make_authorization_request(), session)
        engine.error = ValueError("engine bug")
        request = make_callback({"code": "C", "state": "S1"})
        request.security_context.authentication = AuthenticatedPrincipal(
            principal=None, authorities=(), registration_id="stale"
        )

        with pytest.raises(ValueError, match="engine bug"):
            login_filter.handle(request, _next)

        assert request.security_context.authentication is None

    def test_cleared_when_success_handler_raises(
        self, login_filter, store, session, make_authorization_request, make_callback
    ):
        """Test a failing success handler leaves no principal on the request."""

        class BrokenSuccessHandler:
            def on_authentication_success(self, request, principal):
                raise RuntimeError("template missing")

        login_filter.success_handler = BrokenSuccessHandler()
        store.save(make_authorization_request(), session)
        request = make_callback({"code": "C", "state": "S1"})

        with pytest.raises(RuntimeError, match="template missing"):
            login_filter.handle(request, _next)

        assert request.security_context.authentication is None

    def test_contexts_are_per_request(self, login_filter, store, session, make_authorization_request, make_callback):
        store.save(make_authorization_request(), session)
        authenticated = make_callback({"code": "C", "state": "S1"})
        other = make_callback(path="/")

        login_filter.handle(authenticated, _next)
        login_filter.handle(other, _next)

        assert authenticated.security_context.is_authenticated
        assert not other.security_context.is_authenticated


class TestConcurrentCallbacks:
    def test_double_submit_authenticates_once(
        self, login_filter, store, engine, success_handler, failure_handler, session, make_authorization_request
    ):
        """Test identical callbacks racing on one session succeed exactly once."""
        store.save(make_authorization_request(), session)
        workers = 8
        barrier = threading.Barrier(workers)
        responses = []
        lock = threading.Lock()

        def submit():
            request = CallbackRequest(
                method="GET",
                path="/login/oauth2/code/github",
                query={"code": "C", "state": "S1"},
                base_url="http://localhost",
                session=session,
            )
            barrier.wait()
            response = login_filter.handle(request, _next)
            with lock:
                responses.append(response)

        threads = [threading.Thread(target=submit) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert responses.count(("success", "octocat")) == 1
        assert responses.count(("failure", "authorization_request_not_found")) == workers - 1
        assert len(engine.calls) == 1


class TestBuildLoginFilter:
    """Tests for assembling a filter from configuration."""

    def test_builds_working_filter(
        self, login_config, engine, success_handler, failure_handler, make_authorization_request, make_callback, session
    ):
        login_filter = build_login_filter(login_config, success_handler, failure_handler, engine=engine)
        login_filter.attempt.authorization_requests.save(make_authorization_request(), session)

        assert isinstance(login_filter, LoginFilter)
        assert isinstance(login_filter.attempt, AuthenticationAttempt)
        assert login_filter.handle(make_callback({"code": "C", "state": "S1"}), _next) == ("success", "octocat")

    def test_uses_configured_callback_path(self, login_config, engine, success_handler, failure_handler, make_callback):
        login_config.login.callback_path = "/auth/{registration_id}/callback"
        login_filter = build_login_filter(login_config, success_handler, failure_handler, engine=engine)

        assert isinstance(login_filter.matcher, CallbackMatcher)
        assert login_filter.requires_authentication(make_callback(path="/auth/github/callback"))
        assert not login_filter.requires_authentication(make_callback(path="/login/oauth2/code/github"))

    def test_configured_callback_path_sets_redirect_uri(self, login_config, engine, success_handler, failure_handler):
        """Test registrations on the default template redirect to the configured path."""
        login_config.login.callback_path = "/auth/{registration_id}/callback"
        login_filter = build_login_filter(login_config, success_handler, failure_handler, engine=engine)

        github = login_filter.attempt.registrations.find_by_registration_id("github")
        assert github.expand_redirect_uri("https://app.example.com") == "https://app.example.com/auth/github/callback"

    def test_explicit_redirect_uri_is_matched(self, engine, success_handler, failure_handler, make_callback):
        registration = ClientRegistration(
            registration_id="corp",
            client_id="corp-client",
            redirect_uri_template="{base_url}/sso/corp/return",
        )
        config = LoginConfig(registrations=[registration])
        config.login.callback_path = "/auth/{registration_id}/callback"
        login_filter = build_login_filter(config, success_handler, failure_handler, engine=engine)

        assert login_filter.attempt.registrations.find_by_registration_id("corp") is registration
        assert login_filter.requires_authentication(make_callback(path="/sso/corp/return"))
        assert login_filter.requires_authentication(make_callback(path="/auth/corp/callback"))
        assert not login_filter.requires_authentication(make_callback(path="/login/oauth2/code/corp"))

    def test_closes_engine_it_created(self, login_config, success_handler, failure_handler):
        login_filter = build_login_filter(login_config, success_handler, failure_handler)
        engine = login_filter.attempt.engine
        assert isinstance(engine, HttpAuthenticationEngine)
        http_client = engine.http_client

        login_filter.close()

        assert http_client.is_closed

    def test_leaves_supplied_engine_open(self, login_config, success_handler, failure_handler):
        """Test an engine passed in by the caller stays usable after close."""
        engine = HttpAuthenticationEngine()
        login_filter = build_login_filter(login_config, success_handler, failure_handler, engine=engine)
        http_client = engine.http_client

        login_filter.close()

        assert not http_client.is_closed
        engine.close()

    def test_store_uses_configured_bounds(self, login_config, engine, success_handler, failure_handler):
        login_config.login.request_ttl_seconds = 60
        login_filter = build_login_filter(login_config, success_handler, failure_handler, engine=engine)

        assert login_filter.attempt.authorization_requests.ttl.total_seconds() == 60

    def test_requires_registrations(self, success_handler, failure_handler, engine):
        with pytest.raises(ValueError, match="At least one client registration"):
            build_login_filter(LoginConfig(), success_handler, failure_handler, engine=engine)
