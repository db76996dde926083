# app/__init__.py
import logging
from typing import Union

from flask import Flask, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from quote.aggregation import parse_pincode_ranges
from quote.rate_brackets import load_rate_index
from services.compare_cache import MemoryStore

limiter = Limiter(key_func=get_remote_address)

logger = logging.getLogger(__name__)


def _verify_app_setup(app: Flask) -> list[str]:
    """Check that pricing data and policy settings are usable.

    Args:
        app: The active :class:`~flask.Flask` application.

    Returns:
        A list of human-readable error messages. Loads the rate bracket table
        with :func:`quote.rate_brackets.load_rate_index` and parses
        ``SERVICEABLE_PINCODE_RANGES`` with
        :func:`quote.aggregation.parse_pincode_ranges`.
    """
    errors: list[str] = []
    path = app.config.get("RATE_BRACKETS_PATH")
    try:
        if not len(load_rate_index(path)):
            errors.append(f"Rate bracket table is empty: {path}")
    except (OSError, ValueError, KeyError, TypeError) as exc:
        errors.append(f"Rate bracket table could not be loaded from {path}: {exc}")

    try:
        parse_pincode_ranges(app.config.get("SERVICEABLE_PINCODE_RANGES", ""))
    except ValueError as exc:
        errors.append(f"Invalid SERVICEABLE_PINCODE_RANGES: {exc}")

    return errors


def create_app(config_class: Union[str, type] = "config.Config") -> Flask:
    """Application factory for the freight comparison service.

    Args:
        config_class: Import path or class used to configure the app.

    Returns:
        A fully initialized :class:`~flask.Flask` application.
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # One fast cache tier per worker process, shared by all requests.
    app.extensions["compare_cache_store"] = MemoryStore()

    limiter.init_app(app)

    setup_errors = _verify_app_setup(app)
    if setup_errors:
        message = "; ".join(setup_errors)
        app.logger.error("Application setup failed: %s", message)

        @app.before_request
        def _setup_failed():
            return jsonify({"errors": ["Application is misconfigured."]}), 500

    # Blueprints
    from .compare import compare_bp

    app.register_blueprint(compare_bp, url_prefix="/compare")

    @app.route("/", methods=["GET"])
    def index():
        """Describe the available comparison endpoints."""
        return jsonify(
            {
                "service": "freight-compare",
                "endpoints": {
                    "compare": "/compare/",
                    "last": "/compare/last",
                    "form": "/compare/form",
                },
            }
        )

    return app
