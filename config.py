"""
配置管理模块
所有配置项从环境变量读取，带默认值
"""
import os


def _flag(name, default="0"):
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Config:
    """应用配置类"""

    # Flask 配置
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key-change-in-production")
    COOKIE_SECURE = _flag("COOKIE_SECURE")
    TESTING = False

    # 时区（日志时间戳、开始/结束时间显示）
    APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Shanghai")

    # 日志
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # ===== 猜数字 =====
    GUESS_MIN = int(os.getenv("GUESS_MIN", "1"))
    GUESS_MAX = int(os.getenv("GUESS_MAX", "50"))
    GUESS_OPTION_COUNT = int(os.getenv("GUESS_OPTION_COUNT", "5"))
    GUESS_MULTIPLE_CHOICE = _flag("GUESS_MULTIPLE_CHOICE")
    # 进程内对局：多久没访问就清掉（秒，同时作为 cookie 有效期），以及最多保留多少局
    GUESS_STORE_TTL = int(os.getenv("GUESS_STORE_TTL", str(60*60*24)))
    GUESS_STORE_MAX = int(os.getenv("GUESS_STORE_MAX", "10000"))

    # 环境检测
    IS_PRODUCTION = os.environ.get("FLASK_ENV") == "production"

    @classmethod
    def validate(cls):
        """验证必要配置"""
        errors = []

        if cls.GUESS_MIN > cls.GUESS_MAX:
            errors.append(f"GUESS_MIN ({cls.GUESS_MIN}) must not exceed GUESS_MAX ({cls.GUESS_MAX})")
        else:
            size = cls.GUESS_MAX - cls.GUESS_MIN + 1
            if not (1 <= cls.GUESS_OPTION_COUNT <= size):
                errors.append(f"GUESS_OPTION_COUNT must be between 1 and {size}")

        if cls.GUESS_STORE_TTL <= 0:
            errors.append("GUESS_STORE_TTL must be positive")
        if cls.GUESS_STORE_MAX < 1:
            errors.append("GUESS_STORE_MAX must be at least 1")

        # 生产环境额外检查
        if cls.IS_PRODUCTION:
            if cls.SECRET_KEY == "dev-secret-key-change-in-production":
                errors.append("Must set FLASK_SECRET_KEY in production")

        if errors:
            raise ValueError("\n".join(errors))

        return True

    @classmethod
    def guess_settings(cls):
        """猜数字的游戏参数（便于蓝图直接取用）"""
        return {
            "min_value": cls.GUESS_MIN,
            "max_value": cls.GUESS_MAX,
            "option_count": cls.GUESS_OPTION_COUNT,
            "multiple_choice": cls.GUESS_MULTIPLE_CHOICE,
        }
