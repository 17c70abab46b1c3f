import pytest
from fastapi.testclient import TestClient

from hackscore.api.fastapi import FastAPIApp
from hackscore.api.fastapi.middlewares.auth import get_current_user
from hackscore.models.schemas.users import AuthenticatedUser
from hackscore.services.factory import ServiceFactory
from hackscore.utils.exception import add_exception_handlers
from hackscore.utils.logging import logger


@pytest.fixture
def current_user() -> AuthenticatedUser:
    return AuthenticatedUser(id="user-1", email="dev@example.com")


@pytest.fixture
def services(queue, ledger, worker_client, test_settings):
    return ServiceFactory.from_parts(queue, ledger, worker_client, test_settings)


@pytest.fixture
def app(services, current_user):
    app = FastAPIApp().get_app()
    add_exception_handlers(app, logger)
    app.state.services = services
    app.dependency_overrides[get_current_user] = lambda: current_user
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
