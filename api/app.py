"""
Células Multiplication Readiness API - Flask Application Entry Point

This module initializes the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the services that evaluate when a cell
group is ready to multiply.
"""

import os
from datetime import datetime
from typing import Callable, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag
from observability.config import setup_observability, SERVICE_NAME
from observability.middleware import add_observability_middleware

# Import middleware and utilities
from middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from middleware.validation import ValidationMiddleware
from middleware.auth import AuthMiddleware
from services.hal import create_hal_formatter
from services.mongodb import MongoDBService
from services.auth import AuthService
from services.metrics import MetricsCollector, create_metrics_collector
from services.cells import CellDirectory
from services.criteria_registry import CriteriaRegistry
from services.readiness_store import ReadinessStore
from services.readiness import ReadinessService, create_readiness_config
from routes.criteria import criteria_bp
from routes.readiness import readiness_bp

# Initialize observability first
setup_observability()

SERVICE_VERSION = os.getenv('SERVICE_VERSION', '1.0.0')

# OpenAPI info
info = Info(
    title="Células Multiplication Readiness API",
    version=SERVICE_VERSION,
    description="Multi-tenant cell multiplication readiness engine with HATEOAS Level-3 support"
)

# API tags for organization
tags = [
    Tag(name="Criteria", description="Multiplication criteria management"),
    Tag(name="Readiness", description="Cell multiplication readiness"),
    Tag(name="Health", description="System health and status")
]


def create_app(
    mongodb_service: Optional[MongoDBService] = None,
    auth_service: Optional[AuthService] = None,
    metrics_collector: Optional[MetricsCollector] = None,
    clock: Optional[Callable[[], datetime]] = None
) -> OpenAPI:
    """
    Build the Flask application.

    Collaborators default to the ones configured through the environment;
    tests pass in-memory replacements.
    """
    app = OpenAPI(__name__, info=info)

    # Add observability middleware
    add_observability_middleware(app)

    # Environment configuration
    app.config['ENVIRONMENT'] = os.getenv('ENVIRONMENT', 'development')
    app.config['DEBUG'] = app.config['ENVIRONMENT'] == 'development'

    # Database configuration
    app.config['MONGODB_URI'] = os.getenv('MONGODB_URI', 'mongodb://localhost:27017/celulas_dev')
    app.config['MONGODB_DATABASE'] = os.getenv('MONGODB_DATABASE', 'celulas_dev')

    # Feature flags
    app.config['OTEL_ENABLED'] = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'

    # API configuration
    app.config['BASE_URL'] = os.getenv('BASE_URL', 'http://localhost:5000')

    # Initialize services
    mongodb_service = mongodb_service or MongoDBService(
        app.config['MONGODB_URI'],
        app.config['MONGODB_DATABASE']
    )
    auth_service = auth_service or AuthService()
    metrics_collector = metrics_collector or create_metrics_collector(mongodb_service)

    readiness_config = create_readiness_config()
    criteria_registry = CriteriaRegistry(mongodb_service)
    readiness_service = ReadinessService(
        criteria_registry,
        metrics_collector,
        CellDirectory(mongodb_service),
        ReadinessStore(mongodb_service, history_enabled=readiness_config.history_enabled),
        config=readiness_config,
        clock=clock or datetime.utcnow
    )

    # Initialize middleware
    hal_formatter = create_hal_formatter(app.config['BASE_URL'])
    validation_middleware = ValidationMiddleware()
    auth_middleware = AuthMiddleware(auth_service)
    ErrorHandlerMiddleware(app, app.config['BASE_URL'])

    # Register custom error handlers
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.auth_service = auth_service
    app.criteria_registry = criteria_registry
    app.readiness_service = readiness_service
    app.hal_formatter = hal_formatter
    app.validation_middleware = validation_middleware
    app.auth_middleware = auth_middleware

    # Register routes
    app.register_api(criteria_bp)
    app.register_api(readiness_bp)

    @app.route('/api/healthz')
    def health_check():
        """Health check endpoint reporting database connectivity"""
        mongodb_health = mongodb_service.health_check()
        healthy = mongodb_health['status'] == 'healthy'

        health_data = {
            "status": "healthy" if healthy else "unhealthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": app.config['ENVIRONMENT'],
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "dependencies": {
                "mongodb": mongodb_health
            }
        }

        health_response = hal_formatter.builder.build_resource_response(
            health_data,
            "health",
            "/api/healthz",
            []  # No user permissions needed for health check
        )

        return jsonify(health_response), 200 if healthy else 503

    return app


if __name__ == '__main__':
    # Development server
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
