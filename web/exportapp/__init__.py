"""
Flask app factory: registers config, logging, the export pipeline, blueprints,
and error handlers.
"""

from __future__ import annotations

import atexit
import logging
import os
from typing import Type

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from trace_export import ExportConfig, ExportWorker, SchemaLoadError, load_schema

from exportapp.config import Config, DevelopmentConfig, ProductionConfig
from exportapp.db import create_db_engine
from exportapp.managers.export_manager import ExportManager
from exportapp.routes import export as export_bp
from exportapp.seed import seed_sample_data
from exportapp.utils import init_logging


def create_app(config_class: Type[Config] | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Config selection
    cfg: Type[Config]
    env = os.getenv("FLASK_ENV", "production").lower()
    if config_class is not None:
        cfg = config_class
    elif env.startswith("dev"):
        cfg = DevelopmentConfig
    else:
        cfg = ProductionConfig
    app.config.from_object(cfg)

    # Logging
    logger = init_logging(app)
    app.logger = logger  # align Flask's logger with ours

    # Export pipeline: the schema is loaded once; failure means we cannot serve.
    export_cfg = ExportConfig.from_mapping(app.config)
    try:
        schema = load_schema(export_cfg.schema_path)
    except SchemaLoadError:
        logger.critical("Cannot load export schema; refusing to start", exc_info=True)
        raise

    engine = create_db_engine(app.config["DATABASE_URL"])
    if app.config.get("SEED_SAMPLE_DATA"):
        seed_sample_data(engine, logger=logger)

    export_mgr = ExportManager(
        engine=engine,
        worker=ExportWorker(schema, export_cfg, logger=logging.getLogger("trace_export")),
        fetch_size=app.config["DB_FETCH_SIZE"],
        timeout=app.config.get("EXPORT_TIMEOUT_SECONDS"),
        logger=logger,
    )
    app.extensions["export_mgr"] = export_mgr
    # Release worker threads and pooled connections at interpreter exit
    atexit.register(export_mgr.shutdown)

    # Error handlers
    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        return jsonify({"success": False, "error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_exception(e: Exception):
        app.logger.exception("Unhandled error")
        return jsonify({"success": False, "error": "An internal server error occurred."}), 500

    # Blueprints
    app.register_blueprint(export_bp.bp)

    # Health
    @app.route("/healthz")
    def healthz():
        return jsonify({"status": "ok"}), 200

    return app
