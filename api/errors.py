"""
api.errors - JSON error handlers for the API blueprint.

Only the request phase can fail with an HTTP status.  Once an import
stream has started, every problem is reported as an event inside it.
"""

from flask import jsonify

from api import api_bp
from import_engine.errors import RequestError


@api_bp.errorhandler(RequestError)
def api_request_error(e):
    return jsonify({"error": str(e)}), 400


@api_bp.errorhandler(401)
def api_unauthorized(_e):
    return jsonify({"error": "Unauthorized"}), 401


@api_bp.errorhandler(404)
def api_not_found(_e):
    return jsonify({"error": "not found"}), 404


@api_bp.errorhandler(405)
def api_method_not_allowed(_e):
    return jsonify({"error": "method not allowed"}), 405
