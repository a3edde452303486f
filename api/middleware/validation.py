# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation helpers using Pydantic models.
Provides request body and query parameter parsing with error formatting.
"""

from flask import request
from typing import Type, Dict, Any, List, TypeVar
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from middleware.error_handler import ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)

# Query parameters that may repeat or arrive comma separated
LIST_QUERY_PARAMS = {"cell_ids"}


def format_validation_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """
    Format Pydantic validation errors for API response.

    Args:
        validation_error: Pydantic ValidationError

    Returns:
        List of formatted error dictionaries
    """
    errors = []

    for error in validation_error.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"]
        })

    return errors


def validate_model(model_class: Type[M], data: Dict[str, Any], description: str) -> M:
    """
    Validate a dictionary against a Pydantic model.

    Raises:
        ValidationException: With field-level errors
    """
    try:
        return model_class(**data)
    except ValidationError as e:
        validation_errors = format_validation_errors(e)
        logger.warning(
            f"{description} validation failed",
            extra={"model": model_class.__name__, "errors": validation_errors}
        )
        raise ValidationException(
            f"{description} validation failed for {model_class.__name__}",
            validation_errors
        )


class ValidationMiddleware:
    """Parses the current request into Pydantic models."""

    def get_json_body(self) -> Dict[str, Any]:
        """
        Return the JSON object sent with the request.

        Raises:
            ValidationException: If the body is not a JSON object
        """
        with tracer.start_as_current_span("validation.json_body") as span:
            span.set_attributes({
                "http.method": request.method,
                "http.path": request.path
            })

            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                span.set_attribute("validation.result", "invalid_json")
                raise ValidationException(
                    "Request body must be a JSON object",
                    [{
                        "field": "body",
                        "message": "Expected a JSON object with Content-Type: application/json",
                        "type": "json_error"
                    }]
                )

            span.set_attribute("validation.result", "success")
            return data

    def parse_query_params(self, model_class: Type[M]) -> M:
        """
        Validate query parameters against a Pydantic model.

        Args:
            model_class: Pydantic model class for validation

        Returns:
            Validated model instance
        """
        with tracer.start_as_current_span("validation.query_params") as span:
            span.set_attributes({
                "validation.model": model_class.__name__,
                "http.method": request.method,
                "http.path": request.path
            })

            query_data: Dict[str, Any] = request.args.to_dict()

            for key in request.args.keys():
                values = request.args.getlist(key)
                if key in LIST_QUERY_PARAMS:
                    query_data[key] = [
                        item.strip()
                        for value in values
                        for item in value.split(",")
                        if item.strip()
                    ]
                elif len(values) > 1:
                    query_data[key] = values

            params = validate_model(model_class, query_data, "Query parameter")
            span.set_attribute("validation.result", "success")
            return params
