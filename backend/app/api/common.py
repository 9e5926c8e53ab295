"""Helpers shared by the API blueprints."""

import logging
from typing import Callable, Optional

from flask import current_app, jsonify, request

from services.errors import MetricsError, ValidationError

logger = logging.getLogger(__name__)


def service(name: str):
    """Look up a service wired by ``create_app``."""
    return current_app.extensions["metrics"][name]


def query_params(*names) -> dict:
    """The named query params that were given, blank values dropped."""
    params = {}
    for name in names:
        value = request.args.get(name, "").strip()
        if value:
            params[name] = value
    return params


def get_date_range(params: dict) -> tuple:
    """Get the optional (startDate, endDate) window, either can be None."""
    return params.get("startDate"), params.get("endDate")


def parse_int(params: dict, name: str) -> Optional[int]:
    value = params.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{value}'")


def serialize(value):
    if isinstance(value, list):
        return [item.to_dict() for item in value]
    return value.to_dict()


def respond(route: str, params: dict, compute: Callable):
    """Serve ``compute()`` through the response cache in the JSON envelope.

    ``compute`` returns a model or a list of models. Failures are not cached.
    """
    try:
        data = service("responses").get_or_compute(
            route, params, lambda: serialize(compute())
        )
        return jsonify({"data": data})
    except MetricsError as e:
        log = logger.warning if e.http_status < 500 else logger.error
        log(f"{route} failed with {e.http_status}: {e.message} {e.context()}")
        return jsonify({"error": e.message}), e.http_status
    except Exception:
        logger.exception(f"Unexpected error serving {route} with {params}")
        return jsonify({"error": "An unexpected error occurred"}), 500
