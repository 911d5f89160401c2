import os
from flask import Flask, render_template, request, redirect, url_for

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=True)


from .config import get_config
from .extensions import db, migrate, csrf, login_manager, limiter
from .security import init_security
from .observability import init_logging, init_sentry

def create_app():
    app = Flask(__name__, template_folder="templates", static_folder="static")

    # ---- Rate limiting storage ----
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    use_redis = app_env in ("staging", "production")
    storage_uri = os.environ.get("REDIS_URL") if use_redis else "memory://"
    if use_redis and not storage_uri:
        # Hard fail in stage/prod so we never silently run without RL storage
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")

    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    app.config.setdefault("RATELIMIT_DEFAULTS", ["1000 per hour"])
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)

    # Config: clean, explicit, class-based
    app.config.from_object(get_config())

    # --- Required env validation for prod-like envs (staging/production) ---
    def _require(name: str):
        val = os.getenv(name) or app.config.get(name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    if app_env in ("staging", "production"):
        # Enforce hard requirements at startup (not at import time)
        _require("SECRET_KEY")
        _require("DATABASE_URL")
        if app.config.get("BLOB_BACKEND") == "s3":
            _require("S3_ACCESS_KEY")
            _require("S3_SECRET_KEY")

    # --- Observability & Security ---
    init_logging(app)
    init_sentry(app)

    if app_env in ("staging", "production"):
        init_security(app)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    csrf.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)

    from . import models  # noqa: F401 (register tables on the metadata)

    from .blueprints.auth import bp as auth_bp
    from .blueprints.admin import bp as admin_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")

    # Exempt Flask's static endpoint from default/global limits
    try:
        limiter.exempt(app.view_functions["static"])
    except KeyError:
        pass

    @app.context_processor
    def inject_globals():
        """Inject global template variables."""
        return {
            "SITE_NAME": app.config.get("SITE_NAME", "Study Admin"),
            "APP_ENV": app.config.get("APP_ENV", app_env),
        }

    @app.get("/")
    def root():
        return redirect(url_for("admin.index"))

    @limiter.exempt
    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    # Error handlers (minimal)
    @app.errorhandler(404)
    def not_found(e):
        return ("Not Found", 404)

    @app.errorhandler(500)
    def server_error(e):
        return ("Internal Server Error", 500)

    # CSRF error handler (clean 400 instead of generic 500)
    from flask_wtf.csrf import CSRFError
    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        return (f"CSRF validation failed: {e.description}", 400)

    @app.errorhandler(401)
    def unauthorized(e):
        accept = (request.headers.get("Accept") or "").lower()
        if "application/json" in accept:
            return {"error": "unauthorized", "code": 401}, 401
        return redirect(url_for("auth.login_get", next=request.full_path))

    @app.errorhandler(403)
    def forbidden(e):
        # For HTML requests, render a page; JSON is handled by policy helpers explicitly.
        accept = (request.headers.get("Accept") or "").lower()
        if "application/json" in accept:
            return {"error": "forbidden", "code": 403}, 403
        return render_template("errors/403.html"), 403

    # 429 Too Many Requests: consistent JSON/HTML with Retry-After
    @app.errorhandler(429)
    def too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        headers = {}
        if retry_after is not None:
            headers["Retry-After"] = str(int(retry_after))
        wants_json = (
            "application/json" in (request.headers.get("Accept") or "").lower()
            or request.is_json
            or request.path.endswith(".json")
        )
        if wants_json:
            payload = {"error": "rate_limited", "code": 429}
            if retry_after is not None:
                payload["retry_after"] = int(retry_after)
            return (payload, 429, headers)
        return (render_template("errors/429.html", retry_after=retry_after), 429, headers)

    @app.errorhandler(413)
    def payload_too_large(e):
        if "application/json" in (request.headers.get("Accept") or "").lower():
            return {"error": "payload_too_large", "code": 413}, 413
        return ("Upload too large", 413)

    # CLI commands (ops-grade utilities)
    from .cli import register_cli
    register_cli(app)

    # Blob store for partner logos (local folder or S3 bucket)
    from .services.blob_store import blob_store_from_config
    app.extensions["blob_store"] = blob_store_from_config(app.config)

    return app
