import logging

from flask import Flask, jsonify, render_template, request
from werkzeug.exceptions import HTTPException

from config import Config
from plugins import plugin_metas, register_plugins

logger = logging.getLogger(__name__)


def _is_api(path):
    return path.startswith("/g/") and "/api/" in path


def create_app(config_class=Config):
    config_class.validate()

    logging.basicConfig(
        level=config_class.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config["GUESS_SETTINGS"] = config_class.guess_settings()
    app.secret_key = config_class.SECRET_KEY

    register_plugins(app)

    # ---------------- 路由 ----------------
    @app.route("/")
    def index():
        return render_template("index.html", games=plugin_metas(app))

    @app.route("/healthz")
    def healthz():
        return jsonify({"ok": True})

    # ---------------- 错误处理 ----------------
    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if _is_api(request.path):
            return jsonify({"ok": False, "error": e.name.upper().replace(" ", "_")}), e.code
        return e

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception(f"[app] unhandled error on {request.method} {request.path}")
        if _is_api(request.path):
            return jsonify({"ok": False, "error": "INTERNAL_ERROR"}), 500
        return "Internal Server Error", 500

    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=not Config.IS_PRODUCTION)
