"""Tests for app wiring, plugin discovery, config and the in-process store."""
import threading
from datetime import datetime, timezone

import pytest
from flask import Flask

from app import create_app
from blueprints.games.guess_number.plugin import format_date, format_time
from config import Config
from conftest import TestingConfig
from core.engine import initialize
from core.store import GameStore
from plugins import plugin_metas, register_plugins


class TestPlugins:
    def test_guess_number_registered(self, app):
        slugs = [m["slug"] for m in plugin_metas(app)]
        assert slugs == ["guess_number"]
        assert "guess_number" in app.blueprints

    def test_lobby_lists_games(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        html = resp.get_data(as_text=True)
        assert "/g/guess_number/" in html
        assert "Guess the Number · Too high" in " ".join(html.replace("</a>", "").split())

    def test_missing_base_package(self):
        app = Flask(__name__)
        assert register_plugins(app, base_pkg="no_such_games_pkg") == []
        assert plugin_metas(app) == []

    def test_each_app_has_its_own_store(self):
        a = create_app(TestingConfig)
        b = create_app(TestingConfig)
        assert a.extensions["guess_number_store"] is not b.extensions["guess_number_store"]

    def test_healthz(self, client):
        assert client.get("/healthz").get_json() == {"ok": True}


class TestConfigValidation:
    def test_defaults_are_valid(self):
        assert Config.validate() is True
        assert Config.guess_settings()["min_value"] <= Config.guess_settings()["max_value"]

    def test_empty_range(self):
        class Broken(TestingConfig):
            GUESS_MIN = 10
            GUESS_MAX = 1

        with pytest.raises(ValueError, match="GUESS_MIN"):
            Broken.validate()

    def test_option_count_too_large(self):
        class Broken(TestingConfig):
            GUESS_MAX = 3
            GUESS_OPTION_COUNT = 5

        with pytest.raises(ValueError, match="GUESS_OPTION_COUNT"):
            create_app(Broken)

    def test_production_needs_secret(self):
        class Prod(TestingConfig):
            IS_PRODUCTION = True
            SECRET_KEY = "dev-secret-key-change-in-production"

        with pytest.raises(ValueError, match="FLASK_SECRET_KEY"):
            Prod.validate()


class TestFormatting:
    def test_format_time(self, app):
        with app.app_context():
            assert format_time(datetime(2025, 10, 4, 17, 30, 12, tzinfo=timezone.utc)) == "05:30:12 PM"

    def test_format_date(self, app):
        with app.app_context():
            assert format_date(datetime(2025, 10, 4, 17, 30, tzinfo=timezone.utc)) == "Oct 4, 2025, 5:30 PM"
            assert format_date(datetime(2025, 1, 9, 0, 5, tzinfo=timezone.utc)) == "Jan 9, 2025, 12:05 AM"


class TestGameStore:
    def test_put_get_discard(self):
        store = GameStore()
        state = initialize()
        gid = store.new_id()

        store.put(gid, state)
        assert store.get(gid) is state
        assert gid in store
        assert len(store) == 1

        store.discard(gid)
        assert store.get(gid) is None
        assert len(store) == 0

    def test_missing_id(self):
        store = GameStore()
        assert store.get(None) is None
        assert store.get("") is None
        assert store.get("unknown") is None

    def test_ids_are_unique(self):
        store = GameStore()
        assert len({store.new_id() for _ in range(100)}) == 100

    def test_hold_is_reentrant(self):
        store = GameStore()
        with store.hold():
            store.put("a", initialize())
            assert store.get("a") is not None

    def test_concurrent_puts(self):
        store = GameStore()

        def worker(n):
            for i in range(50):
                store.put(f"{n}-{i}", initialize())

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store) == 200


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now


class TestGameStoreEviction:
    def test_stale_games_are_dropped(self):
        clock = FakeClock()
        store = GameStore(ttl=60, clock=clock)
        store.put("old", initialize())

        clock.now += 30
        store.put("young", initialize())

        clock.now += 31
        assert store.get("old") is None
        assert store.get("young") is not None
        assert len(store) == 1

    def test_access_keeps_a_game_alive(self):
        clock = FakeClock()
        store = GameStore(ttl=60, clock=clock)
        state = store.put("a", initialize())

        for _ in range(5):
            clock.now += 50
            assert store.get("a") is state

    def test_put_evicts_expired_entries(self):
        clock = FakeClock()
        store = GameStore(ttl=60, clock=clock)
        for i in range(10):
            store.put(f"g{i}", initialize())

        clock.now += 61
        store.put("fresh", initialize())
        assert "g0" not in store
        assert len(store) == 1

    def test_capacity_drops_least_recently_seen(self):
        clock = FakeClock()
        store = GameStore(max_games=3, clock=clock)
        for gid in ("a", "b", "c"):
            clock.now += 1
            store.put(gid, initialize())

        clock.now += 1
        store.get("a")
        clock.now += 1
        store.put("d", initialize())

        assert len(store) == 3
        assert "b" not in store
        assert all(gid in store for gid in ("a", "c", "d"))


class TestStoreBoundedOverHttp:
    def test_cookieless_requests_do_not_grow_past_cap(self):
        class Small(TestingConfig):
            GUESS_STORE_MAX = 20

        app = create_app(Small)
        for _ in range(100):
            app.test_client().get("/g/guess_number/api/state")

        assert len(app.extensions["guess_number_store"]) == 20

    def test_cookie_lifetime_matches_store_ttl(self):
        class ShortLived(TestingConfig):
            GUESS_STORE_TTL = 600

        app = create_app(ShortLived)
        resp = app.test_client().get("/g/guess_number/api/state")
        assert "Max-Age=600" in resp.headers["Set-Cookie"]

    def test_bad_store_config_rejected(self):
        class Broken(TestingConfig):
            GUESS_STORE_MAX = 0

        with pytest.raises(ValueError, match="GUESS_STORE_MAX"):
            Broken.validate()
