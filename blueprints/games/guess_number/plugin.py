import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from flask import (Blueprint, current_app, flash, jsonify, make_response, redirect,
                   render_template, request, url_for)
from itsdangerous import BadData, URLSafeSerializer

from core.engine import InvalidGuessInput, reset_game, select_option, submit_text_guess
from core.store import DEFAULT_MAX_GAMES, DEFAULT_TTL, GameStore

logger = logging.getLogger(__name__)

SLUG = "guess_number"
COOKIE_NAME = f"{SLUG}_state"

def get_meta():
    return {
        "slug": SLUG,
        "title": "Guess the Number",
        "subtitle": "Too high, too low, or correct? Text or card mode",
        "path": f"/g/{SLUG}/",
        "tags": ["Demo", "Cards"]
    }

bp = Blueprint(
    SLUG, __name__,
    template_folder="templates",
)

@bp.record_once
def _init_store(state):
    # 每个 app 一份进程内存储
    cfg = state.app.config
    state.app.extensions.setdefault(f"{SLUG}_store", GameStore(
        ttl=cfg.get("GUESS_STORE_TTL", DEFAULT_TTL),
        max_games=cfg.get("GUESS_STORE_MAX", DEFAULT_MAX_GAMES),
    ))

def _store() -> GameStore:
    return current_app.extensions[f"{SLUG}_store"]

def _ser():
    return URLSafeSerializer(current_app.config["SECRET_KEY"], salt=f"{SLUG}-state")

def _tz():
    return ZoneInfo(current_app.config.get("APP_TIMEZONE") or "UTC")

def _now():
    return datetime.now(_tz())

# —— 时间格式：纯展示 ——
def format_time(dt):
    """05:30:12 PM"""
    return dt.astimezone(_tz()).strftime("%I:%M:%S %p")

def format_date(dt):
    """Oct 4, 2025, 5:30 PM"""
    dt = dt.astimezone(_tz())
    hour = dt.hour % 12 or 12
    return f"{dt:%b} {dt.day}, {dt.year}, {hour}:{dt:%M} {dt:%p}"

def _mode_flag(mode):
    """'cards' / 'text' -> bool；其他值（含缺省）返回 None 表示沿用"""
    if mode is None:
        return None
    mode = str(mode).strip().lower()
    if mode in ("cards", "card", "choice", "multiple_choice"):
        return True
    if mode in ("text", "input"):
        return False
    return None

# —— 对局身份：签名 cookie 里只放 game id；验签失败或找不到即开新局 ——
def _load_game_id():
    raw = request.cookies.get(COOKIE_NAME)
    if not raw:
        return None
    try:
        st = _ser().loads(raw)
    except BadData:
        logger.info(f"[{SLUG}] tampered state cookie, starting a new game")
        return None
    return st.get("g") if isinstance(st, dict) else None

def _save_game_id(resp, game_id):
    resp.set_cookie(COOKIE_NAME, _ser().dumps({"g": game_id}), max_age=_store().ttl,
                    httponly=True, samesite="Lax", secure=current_app.config.get("COOKIE_SECURE", False))
    return resp

def _start(previous=None, mode=None, old_id=None):
    store = _store()
    settings = current_app.config["GUESS_SETTINGS"]
    multiple_choice = _mode_flag(mode)
    if multiple_choice is None and previous is None:
        multiple_choice = settings["multiple_choice"]
    state = reset_game(
        previous,
        multiple_choice=multiple_choice,
        min_value=settings["min_value"],
        max_value=settings["max_value"],
        option_count=settings["option_count"],
        now=_now(),
    )
    if old_id:
        store.discard(old_id)
    game_id = store.new_id()
    store.put(game_id, state)
    logger.info(f"[{SLUG}] new game {game_id[:8]} range=[{state.min_value},{state.max_value}] "
                f"mode={'cards' if state.multiple_choice else 'text'}")
    return game_id, state

def _current():
    """返回 (game_id, state)；没有可用的对局（首次访问）等同于 reset"""
    game_id = _load_game_id()
    state = _store().get(game_id)
    if state is None:
        return _start()
    return game_id, state

def _view(state):
    """GameState -> 模板/JSON 用的展示数据"""
    return {
        "attempts": state.attempts,
        "message": state.message,
        "is_over": state.is_over,
        "mode": "cards" if state.multiple_choice else "text",
        "min": state.min_value,
        "max": state.max_value,
        "started": f"Game Started: {format_date(state.started_at)}",
        "finished": f"Game Finished: {format_date(state.finished_at) if state.finished_at else 'Waiting...'}",
        "options": list(state.options),
        "target": state.target if state.is_over else None,
        "log": [
            {
                "attempt": f"#{e.attempt_number}",
                "guess": e.guessed_value,
                "result": e.outcome.label,
                "outcome": e.outcome.value,
                "time": format_time(e.logged_at),
            }
            for e in state.log
        ],
    }

def _apply(action, value):
    """在锁内读-改-写当前局；校验失败抛 InvalidGuessInput，状态不变"""
    store = _store()
    with store.hold():
        game_id, state = _current()
        try:
            outcome = action(state, value, now=_now())
        except InvalidGuessInput as e:
            e.game_id = game_id
            raise
        if outcome is not None:
            logger.info(f"[{SLUG}] game {game_id[:8]} attempt #{state.attempts}: "
                        f"guess={state.log[0].guessed_value} -> {outcome.value}")
            if state.is_over:
                logger.info(f"[{SLUG}] game {game_id[:8]} finished in {state.attempts} tries")
    return game_id, state, outcome

# ================= 页面（表单） =================
@bp.get("/")
@bp.get("")
def page():
    game_id, state = _current()
    resp = make_response(render_template(f"games/{SLUG}/index.html", game=_view(state), meta=get_meta()))
    return _save_game_id(resp, game_id)

def _form_submit(action, field):
    try:
        game_id, _, _ = _apply(action, request.form.get(field))
    except InvalidGuessInput as e:
        logger.info(f"[{SLUG}] rejected input {e.raw!r}: {e.message}")
        flash(e.message, "error")
        game_id = e.game_id
    return _save_game_id(redirect(url_for(".page")), game_id)

@bp.post("/guess")
def guess():
    return _form_submit(submit_text_guess, "guess")

@bp.post("/select")
def select():
    return _form_submit(select_option, "value")

@bp.post("/reset")
def reset():
    with _store().hold():
        old_id = _load_game_id()
        previous = _store().get(old_id)
        game_id, _ = _start(previous, request.form.get("mode"), old_id)
    return _save_game_id(redirect(url_for(".page")), game_id)

# ================= JSON API =================
def _payload(state, outcome=None):
    return {
        "ok": True,
        "result": outcome.value if outcome is not None else None,
        "tries": state.attempts,
        "state": _view(state),
    }

def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}

def _bad_input(e):
    logger.info(f"[{SLUG}] rejected input {e.raw!r}: {e.message}")
    resp = jsonify({"ok": False, "error": "BAD_INPUT", "message": e.message})
    resp.status_code = 400
    return _save_game_id(resp, e.game_id)

@bp.get("/api/state")
def api_state():
    game_id, state = _current()
    return _save_game_id(jsonify(_payload(state)), game_id)

@bp.post("/api/start")
def api_start():
    data = _json_body()
    with _store().hold():
        old_id = _load_game_id()
        previous = _store().get(old_id)
        game_id, state = _start(previous, data.get("mode"), old_id)
    return _save_game_id(jsonify(_payload(state)), game_id)

def _api_submit(action, key):
    data = _json_body()
    raw = data.get(key) if key in data else (request.form.get(key) or "").strip()
    try:
        game_id, state, outcome = _apply(action, raw)
    except InvalidGuessInput as e:
        return _bad_input(e)
    return _save_game_id(jsonify(_payload(state, outcome)), game_id)

@bp.post("/api/guess")
def api_guess():
    return _api_submit(submit_text_guess, "n")

@bp.post("/api/select")
def api_select():
    return _api_submit(select_option, "value")

def get_blueprint():
    return bp
