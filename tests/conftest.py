import pytest
from itsdangerous import URLSafeSerializer

from app import create_app
from config import Config
from blueprints.games.guess_number.plugin import COOKIE_NAME, SLUG


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    APP_TIMEZONE = "UTC"
    GUESS_MIN = 1
    GUESS_MAX = 50
    GUESS_OPTION_COUNT = 5
    GUESS_MULTIPLE_CHOICE = False


class CardsConfig(TestingConfig):
    GUESS_MULTIPLE_CHOICE = True


@pytest.fixture
def app():
    return create_app(TestingConfig)


@pytest.fixture
def cards_app():
    return create_app(CardsConfig)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def cards_client(cards_app):
    return cards_app.test_client()


def current_state(app, client):
    """从签名 cookie 取出 game id，再去 store 里拿对应的 GameState"""
    cookie = client.get_cookie(COOKIE_NAME)
    assert cookie is not None
    game_id = URLSafeSerializer(app.config["SECRET_KEY"], salt=f"{SLUG}-state").loads(cookie.value)["g"]
    return app.extensions[f"{SLUG}_store"].get(game_id)
