# core/store.py
"""
进程内的对局存储：game_id -> GameState
不落库，进程重启即丢失；Flask 多线程处理请求，所以整个 store 用一把锁串行化
超过 ttl 没被访问的对局会被清掉（与 cookie 的 max_age 一致），总数超过 max_games 时淘汰最久未访问的
"""
import secrets
import threading
import time
from collections import OrderedDict
from contextlib import contextmanager

from core.engine import GameState

DEFAULT_TTL = 60*60*24
DEFAULT_MAX_GAMES = 10000


class GameStore:
    def __init__(self, ttl=DEFAULT_TTL, max_games=DEFAULT_MAX_GAMES, clock=time.monotonic):
        # game_id -> (state, last_seen)，按 last_seen 从旧到新排列
        self._games: "OrderedDict[str, tuple[GameState, float]]" = OrderedDict()
        self._lock = threading.RLock()
        self.ttl = ttl
        self.max_games = max_games
        self._clock = clock

    def new_id(self) -> str:
        return secrets.token_hex(16)

    def _evict(self, now):
        while self._games:
            game_id, (_, last_seen) = next(iter(self._games.items()))
            if now - last_seen < self.ttl and len(self._games) <= self.max_games:
                break
            del self._games[game_id]

    def get(self, game_id):
        if not game_id:
            return None
        with self._lock:
            now = self._clock()
            self._evict(now)
            entry = self._games.get(game_id)
            if entry is None:
                return None
            self._games[game_id] = (entry[0], now)
            self._games.move_to_end(game_id)
            return entry[0]

    def put(self, game_id, state: GameState):
        with self._lock:
            now = self._clock()
            self._games[game_id] = (state, now)
            self._games.move_to_end(game_id)
            self._evict(now)
        return state

    def discard(self, game_id):
        with self._lock:
            self._games.pop(game_id, None)

    @contextmanager
    def hold(self):
        """一个请求里读-改-写同一局时持有锁（可重入），避免连点导致重复计数"""
        with self._lock:
            yield self

    def __len__(self):
        with self._lock:
            self._evict(self._clock())
            return len(self._games)

    def __contains__(self, game_id):
        with self._lock:
            self._evict(self._clock())
            return game_id in self._games
