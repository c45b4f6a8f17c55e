"""
Flask binding for the policy engine.

Exposes the boundary operations over HTTP for environments that cannot load
the library directly. The service is stateless: every request carries the
serialized policy it operates on and every mutating response carries the new
one.
"""

from __future__ import annotations

import json
import time
from typing import Any

from flask import Flask, jsonify, request

from ..interfaces import boundary
from ..policy.models import DEFAULT_MAX_ROTATIONS


def _encode(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


def _respond(outcome: boundary.Outcome, key: str):
    if not outcome.ok:
        status = 422 if outcome.error_kind == "SerializationError" else 400
        return jsonify({
            "error": outcome.error_kind,
            "code": outcome.error_code,
            "message": outcome.message,
        }), status
    return jsonify({key: json.loads(outcome.data)})


def _missing(*fields: str):
    data = request.get_json(silent=True) or {}
    absent = [f for f in fields if f not in data]
    if absent:
        return data, (jsonify({"error": f"{', '.join(absent)} required"}), 400)
    return data, None


def create_app(config: dict[str, Any] | None = None) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(__name__)
    app.config["MAX_ROTATIONS"] = DEFAULT_MAX_ROTATIONS
    if config:
        app.config.update(config)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "healthy", "timestamp": time.time()})

    # --- Policy ---

    @app.route("/api/v1/policy", methods=["POST"])
    def new_policy():
        data, error = _missing("axes")
        if error:
            return error
        max_rotations = data.get("max_rotations", app.config["MAX_ROTATIONS"])
        outcome = boundary.new_policy(_encode(data["axes"]), max_rotations=max_rotations)
        return _respond(outcome, "policy")

    @app.route("/api/v1/policy/axis", methods=["POST"])
    def add_axis():
        data, error = _missing("policy", "axis")
        if error:
            return error
        outcome = boundary.add_axis(_encode(data["policy"]), _encode(data["axis"]))
        return _respond(outcome, "policy")

    @app.route("/api/v1/policy/rotate", methods=["POST"])
    def rotate():
        data, error = _missing("policy", "attributes")
        if error:
            return error
        outcome = boundary.rotate(_encode(data["policy"]), _encode(json.dumps(data["attributes"])))
        return _respond(outcome, "policy")

    @app.route("/api/v1/policy/clear-rotations", methods=["POST"])
    def clear_rotations():
        data, error = _missing("policy", "attributes")
        if error:
            return error
        outcome = boundary.clear_old_rotations(
            _encode(data["policy"]), _encode(json.dumps(data["attributes"]))
        )
        return _respond(outcome, "policy")

    @app.route("/api/v1/policy/hint", methods=["POST"])
    def hint():
        data, error = _missing("policy", "attributes")
        if error:
            return error
        outcome = boundary.hybridization_hint(
            _encode(data["policy"]), _encode(json.dumps(data["attributes"]))
        )
        return _respond(outcome, "hints")

    @app.route("/api/v1/policy/combinations", methods=["POST"])
    def combinations():
        data, error = _missing("policy", "access_policy")
        if error:
            return error
        follow_hierarchy = data.get("follow_hierarchy", True)
        if not isinstance(follow_hierarchy, bool):
            return jsonify({"error": "follow_hierarchy must be a boolean"}), 400
        outcome = boundary.attribute_combinations(
            _encode(data["policy"]),
            _encode(data["access_policy"]),
            follow_hierarchy=follow_hierarchy,
        )
        return _respond(outcome, "combinations")

    # --- Access policies ---

    @app.route("/api/v1/access-policy/parse", methods=["POST"])
    def parse_access_policy():
        data, error = _missing("expression")
        if error:
            return error
        outcome = boundary.parse_access_policy(data["expression"])
        return _respond(outcome, "access_policy")

    return app
