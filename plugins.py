# plugins.py
import importlib, logging, pkgutil
from typing import List, Dict

logger = logging.getLogger(__name__)

def register_plugins(app, base_pkg="blueprints.games"):
    """
    自动发现 base_pkg.*.plugin，调用 get_meta()/get_blueprint() 注册到 /g/<slug>
    元数据存在 app.extensions["plugins"] 里，每个 app 一份
    """
    metas: List[Dict] = app.extensions.setdefault("plugins", [])
    try:
        pkg = importlib.import_module(base_pkg)
    except ModuleNotFoundError:
        logger.warning(f"[plugins] base_pkg '{base_pkg}' not found")
        return metas

    for m in pkgutil.iter_modules(pkg.__path__):
        if not m.ispkg:
            continue
        mod_name = f"{base_pkg}.{m.name}.plugin"
        try:
            mod = importlib.import_module(mod_name)
        except ModuleNotFoundError as e:
            if e.name != mod_name:
                raise
            # 子目录没有 plugin.py，跳过
            continue

        get_meta = getattr(mod, "get_meta", None)
        get_bp   = getattr(mod, "get_blueprint", None)
        if not callable(get_meta) or not callable(get_bp):
            logger.warning(f"[plugins] {mod_name} missing get_meta/get_blueprint, skipped")
            continue

        meta = get_meta()
        bp   = get_bp()
        slug = meta.get("slug", m.name)

        app.register_blueprint(bp, url_prefix=f"/g/{slug}")
        metas.append(meta)
        logger.info(f"[plugins] Registered '{slug}' at /g/{slug}/")
    return metas

def plugin_metas(app) -> List[Dict]:
    return list(app.extensions.get("plugins", []))
