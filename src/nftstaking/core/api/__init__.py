"""
HTTP API for the local staking chain.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Tuple

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .staking_routes import error_response, register_staking_routes, success_response

if TYPE_CHECKING:
    from ..local_chain import LocalChain

logger = logging.getLogger(__name__)


def create_app(chain: "LocalChain") -> Flask:
    """Build the Flask app serving ``chain``."""
    app = Flask(__name__)

    register_staking_routes(app, chain)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok", "block_number": chain.block_number}), 200

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Tuple[Any, int]:
        return error_response(
            error.description or error.name,
            status=error.code or 500,
            code=error.name.lower().replace(" ", "_"),
        )

    logger.info(
        "Staking API created",
        extra={"event": "api.created", "pool": chain.pool.address[:10]},
    )
    return app


__all__ = ["create_app", "register_staking_routes", "success_response", "error_response"]
