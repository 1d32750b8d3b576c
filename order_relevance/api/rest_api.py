"""
REST API for the relevance engine.

This module provides the HTTP endpoint that returns the stored orders
relevant to a wallet, plus holdings, whitelist and statistics endpoints.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, current_app, request, jsonify
from flask_cors import CORS

from .. import __version__
from ..config.settings import Settings, get_settings
from ..core.errors import InvalidAddress, QueryAborted, RepositoryUnavailable
from ..core.service import RelatedOrdersService
from .validators import (
    parse_flag,
    split_address_path,
    validate_timeout,
    validate_wallet_address,
)

logger = logging.getLogger(__name__)

SERVICE_KEY = "order_relevance"
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def create_app(service: Optional[RelatedOrdersService] = None, settings: Optional[Settings] = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        service: Related orders service (built from settings when omitted)
        settings: Configuration (global settings when omitted)

    Returns:
        Configured Flask application
    """
    settings = settings or get_settings()
    app = Flask(__name__)

    if settings.enable_cors:
        CORS(app, origins=settings.cors_origins)

    app.extensions[SERVICE_KEY] = service or RelatedOrdersService.from_settings(settings)

    register_routes(app)

    logger.info("REST API initialized")
    return app


def get_service() -> RelatedOrdersService:
    return current_app.extensions[SERVICE_KEY]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(message: str, status: int) -> tuple:
    return jsonify({'error': message}), status


def register_routes(app: Flask) -> None:
    """Register all API routes."""

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        service = get_service()
        return jsonify({
            'status': 'healthy',
            'network': service.network,
            'timestamp': _timestamp(),
            'version': __version__
        })

    @app.route('/relatedOrders', methods=ALL_METHODS, strict_slashes=False)
    def related_orders_missing():
        if request.method != 'GET':
            return _error('Unable to handle request', 400)
        return _error('Missing wallet address', 400)

    @app.route('/relatedOrders/<path:address_param>', methods=ALL_METHODS)
    def related_orders(address_param: str):
        """
        Get the stored orders relevant to a wallet.

        Query parameters:
        - details: return holdings and failures alongside the orders
        - timeout: query deadline in seconds (capped by configuration)
        """
        if request.method != 'GET':
            return _error('Unable to handle request', 400)

        is_valid, error, wallet = validate_wallet_address(split_address_path(address_param))
        if not is_valid:
            return _error(error, 400)

        service = get_service()
        is_valid, error, timeout = validate_timeout(request.args.get('timeout'), service.query_timeout)
        if not is_valid:
            return _error(error, 400)

        try:
            result = service.related_orders(wallet, service.new_context(timeout))
        except InvalidAddress as e:
            return _error(str(e), 400)
        except RepositoryUnavailable as e:
            logger.error(f"Order store unavailable: {str(e)}")
            return _error('Order store unavailable', 503)
        except QueryAborted as e:
            logger.warning(f"Query for {wallet} aborted: {str(e)}")
            return _error(str(e), 504)
        except Exception as e:
            logger.error(f"Error finding related orders for {wallet}: {str(e)}")
            return _error('Internal server error', 500)

        if parse_flag(request.args.get('details')):
            response = jsonify(result.to_dict())
        else:
            response = jsonify(result.orders_payload())

        if result.partial:
            response.headers['X-Partial-Result'] = 'true'
            response.headers['X-Failed-Contracts'] = ','.join(result.failed_contracts)

        return response, 200

    @app.route('/holdings/<path:address_param>', methods=['GET'])
    def get_holdings(address_param: str):
        """Get a wallet's whitelisted holdings without matching orders."""
        is_valid, error, wallet = validate_wallet_address(split_address_path(address_param))
        if not is_valid:
            return _error(error, 400)

        service = get_service()
        try:
            snapshot = service.holdings(wallet)
        except InvalidAddress as e:
            return _error(str(e), 400)
        except QueryAborted as e:
            return _error(str(e), 504)
        except Exception as e:
            logger.error(f"Error getting holdings for {wallet}: {str(e)}")
            return _error('Internal server error', 500)

        return jsonify(snapshot.to_dict()), 200

    @app.route('/contracts', methods=['GET'])
    def get_contracts():
        """Get the whitelisted contracts for the configured network."""
        service = get_service()
        contracts = service.registry.contracts(service.network)
        return jsonify({
            'network': service.network,
            'contracts': [contract.to_dict() for contract in contracts],
            'count': len(contracts),
            'timestamp': _timestamp()
        }), 200

    @app.route('/statistics', methods=['GET'])
    def get_statistics():
        """Get service statistics."""
        try:
            return jsonify(get_service().get_statistics()), 200
        except Exception as e:
            logger.error(f"Error getting statistics: {str(e)}")
            return _error('Internal server error', 500)

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return _error('Endpoint not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return _error('Method not allowed', 405)

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal server error: {str(error)}")
        return _error('Internal server error', 500)


def run_server(host: str = '0.0.0.0', port: int = 5000, debug: bool = False) -> None:
    """
    Run the REST API server.

    Args:
        host: Host to bind to
        port: Port to bind to
        debug: Enable debug mode
    """
    app = create_app()
    logger.info(f"Starting REST API server on {host}:{port}")
    app.run(host=host, port=port, debug=debug)
