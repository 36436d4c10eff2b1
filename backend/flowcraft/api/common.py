"""Helpers shared by the API blueprints."""

import logging

from flask import current_app, jsonify, request

from flowcraft.services.errors import FlowCraftError

logger = logging.getLogger(__name__)


def get_workspace():
    """Return the Workspace bound to the running app."""
    return current_app.extensions["flowcraft"]


def get_viewer_id():
    """Viewer identity from the X-FlowCraft-User header, else the configured user."""
    return request.headers.get("X-FlowCraft-User") or get_workspace().viewer_id


def fields_from_json(model, body: dict) -> dict:
    """Translate a camelCase JSON body into model attribute names.

    Only keys present in the body are returned, so absent keys stay absent
    for partial updates.
    """
    fields = {}
    for attr, key in model.KEYS.items():
        json_key = key.lstrip("$")
        if json_key in body:
            fields[attr] = body[json_key]
    return fields


def error_response(error: Exception):
    """JSON error body with the status matching the error type."""
    if isinstance(error, FlowCraftError):
        status = error.http_status
    elif isinstance(error, (ValueError, TypeError)):
        status = 400
    else:
        status = 500

    if status >= 500:
        logger.error(f"Request failed: {error}")
    return jsonify({"error": str(error)}), status
