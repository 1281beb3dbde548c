# -*- coding: utf-8 -*-
import logging

from flask import Flask, request, jsonify
from flask_cors import CORS

from opsconsole.config import load_config
from opsconsole.db import make_engine, make_session_factory, init_db, check_connection
from opsconsole.ops.middleware.scope_middleware import current_actor_id
from opsconsole.ops.services import OpsServices


def create_app(config=None, clock=None):
    app = Flask(__name__)

    # ============================================
    # CONFIG
    # ============================================
    settings = load_config(config)
    app.config.update(settings)

    logging.basicConfig(
        level=getattr(logging, str(settings["LOG_LEVEL"]).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ============================================
    # DATABASE
    # ============================================
    engine = make_engine(settings["DATABASE_URL"])
    session_factory = make_session_factory(engine)
    if settings["OPS_CREATE_TABLES"] or engine.dialect.name == "sqlite":
        # Supabase/PostgreSQL schema is managed by migrations
        init_db(engine)

    app.extensions["ops_engine"] = engine
    app.extensions["ops_session_factory"] = session_factory

    # ============================================
    # SERVICES
    # ============================================
    app.extensions["ops"] = OpsServices.build(
        session_factory,
        identity_provider=current_actor_id,
        clock=clock,
        ttl=settings["OPS_CACHE_TTL_SECONDS"],
        identity_attempts=settings["OPS_IDENTITY_RETRIES"],
        identity_backoff=settings["OPS_IDENTITY_BACKOFF_SECONDS"],
        history_limit=settings["OPS_HISTORY_DEFAULT_LIMIT"],
        page_size=settings["OPS_DEFAULT_PAGE_SIZE"],
        max_page_size=settings["OPS_MAX_PAGE_SIZE"],
    )
    app.extensions["ops"].monitor.add_check("database", lambda: check_connection(engine))

    # ============================================
    # CORS
    # ============================================
    CORS(
        app,
        resources={r"/*": {"origins": settings["CORS_ORIGINS"]}},
        supports_credentials=False,
    )

    # ============================================
    # PREFLIGHT HANDLER
    # ============================================
    @app.before_request
    def handle_preflight():
        if request.method == "OPTIONS":
            return jsonify({"status": "ok"}), 200

    # ============================================
    # BLUEPRINTS
    # ============================================
    from opsconsole.routes import ops_routes

    app.register_blueprint(ops_routes.ops_bp)
    logging.info("Ops blueprint registered")

    # ============================================
    # HEALTH CHECK
    # ============================================
    @app.route("/health", methods=["GET"])
    def health_check():
        database_ok = check_connection(engine)
        return jsonify({
            "status": "ok" if database_ok else "degraded",
            "database": database_ok,
        }), 200 if database_ok else 503

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=False)
