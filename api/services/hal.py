# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 API responses with conditional affordance links.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode
import math

from models.responses import HalLink
from domain.authorization import (
    EVALUATE_READINESS,
    UPDATE_CRITERIA,
    DELETE_CRITERIA
)

PROBLEM_BASE_URI = "https://api.celulas.app/problems"

CRITERIA_PATH = "/api/multiplication/criteria"
READINESS_PATH = "/api/multiplication/readiness"
EVALUATE_PATH = "/api/multiplication/evaluate"


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url + '/', path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        """Build link to parent collection."""
        return self.build_link(collection_path, title="Collection")


class PaginationLinkBuilder:
    """Builder for pagination links in HAL collections."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _page_link(self, base_path: str, params: Dict[str, Any], page: int,
                   page_size: int, title: str) -> HalLink:
        query = urlencode({**params, 'page': page, 'page_size': page_size}, doseq=True)
        return self.link_builder.build_link(f"{base_path}?{query}", title=title)

    def build_pagination_links(
        self,
        base_path: str,
        current_page: int,
        total_pages: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, HalLink]:
        """Build pagination links for a collection."""
        params = {k: v for k, v in (query_params or {}).items() if v is not None}
        links = {'self': self._page_link(base_path, params, current_page, page_size, "Current page")}

        if current_page > 1:
            links['first'] = self._page_link(base_path, params, 1, page_size, "First page")
            links['prev'] = self._page_link(base_path, params, current_page - 1, page_size, "Previous page")

        if current_page < total_pages:
            links['next'] = self._page_link(base_path, params, current_page + 1, page_size, "Next page")
            links['last'] = self._page_link(base_path, params, total_pages, page_size, "Last page")

        return links


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on permissions."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_criterion_affordances(
        self,
        criterion_id: str,
        user_permissions: List[str]
    ) -> Dict[str, HalLink]:
        """Build conditional affordance links for a criterion."""
        base_path = f"{CRITERIA_PATH}/{criterion_id}"
        links = {
            'self': self.link_builder.build_self_link(base_path),
            'collection': self.link_builder.build_collection_link(CRITERIA_PATH)
        }

        if UPDATE_CRITERIA in user_permissions:
            links['update'] = self.link_builder.build_link(
                base_path,
                method="PUT",
                content_type="application/json",
                title="Update criterion"
            )

        if DELETE_CRITERIA in user_permissions:
            links['delete'] = self.link_builder.build_link(
                base_path,
                method="DELETE",
                title="Delete criterion"
            )

        return links

    def build_readiness_affordances(
        self,
        cell_id: str,
        user_permissions: List[str]
    ) -> Dict[str, HalLink]:
        """Build conditional affordance links for a cell's readiness record."""
        links = {
            'self': self.link_builder.build_self_link(f"{READINESS_PATH}/{cell_id}"),
            'collection': self.link_builder.build_collection_link(READINESS_PATH),
            'history': self.link_builder.build_link(f"{READINESS_PATH}/{cell_id}/history")
        }

        if EVALUATE_READINESS in user_permissions:
            links['evaluate'] = self.link_builder.build_link(
                f"{EVALUATE_PATH}/{cell_id}",
                method="POST",
                title="Re-evaluate readiness"
            )

        return links


class HalResponseBuilder:
    """Main HAL response builder with comprehensive formatting capabilities."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.pagination_builder = PaginationLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(
        self,
        data: Dict[str, Any],
        resource_type: str,
        resource_id: str,
        user_permissions: List[str]
    ) -> Dict[str, Any]:
        """Build a HAL resource response with appropriate affordance links."""
        response = dict(data)

        if resource_type == "criterion":
            links = self.affordance_builder.build_criterion_affordances(resource_id, user_permissions)
        elif resource_type == "readiness":
            links = self.affordance_builder.build_readiness_affordances(resource_id, user_permissions)
        else:
            links = {'self': self.link_builder.build_self_link(resource_id)}

        response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response with pagination links."""
        total_pages = math.ceil(total / page_size) if page_size > 0 else 1

        pagination_links = self.pagination_builder.build_pagination_links(
            collection_path,
            page,
            total_pages,
            page_size,
            query_params
        )

        return {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': total_pages,
            '_links': {rel: link.model_dump(exclude_none=True) for rel, link in pagination_links.items()},
            '_embedded': {
                'items': items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URI}/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )
        elif error_type == "no-criteria-configured":
            links['criteria'] = self.link_builder.build_link(
                CRITERIA_PATH,
                method="POST",
                content_type="application/json",
                title="Configure criteria"
            )

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_criterion(
        self,
        criterion: Dict[str, Any],
        user_permissions: List[str]
    ) -> Dict[str, Any]:
        """Format a criterion with HAL links."""
        return self.builder.build_resource_response(
            criterion,
            "criterion",
            criterion['id'],
            user_permissions
        )

    def format_criteria_collection(
        self,
        criteria: List[Dict[str, Any]],
        user_permissions: List[str],
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format the (unpaginated) criteria listing."""
        items = [self.format_criterion(c, user_permissions) for c in criteria]
        return self.builder.build_collection_response(
            items,
            len(items),
            1,
            max(len(items), 1),
            CRITERIA_PATH,
            filters
        )

    def format_readiness(
        self,
        record: Dict[str, Any],
        user_permissions: List[str]
    ) -> Dict[str, Any]:
        """Format a readiness record with HAL links."""
        return self.builder.build_resource_response(
            record,
            "readiness",
            record['cell_id'],
            user_permissions
        )

    def format_readiness_collection(
        self,
        records: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        user_permissions: List[str],
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format a page of readiness records with HAL links."""
        items = [self.format_readiness(r, user_permissions) for r in records]
        return self.builder.build_collection_response(
            items,
            total,
            page,
            page_size,
            READINESS_PATH,
            filters
        )

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Format a validation error response."""
        return self.builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            detail,
            instance,
            validation_errors
        )

    def format_authentication_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format an authentication error response."""
        return self.builder.build_error_response(
            "authentication-required",
            "Authentication Required",
            401,
            detail,
            instance
        )

    def format_authorization_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format an authorization error response."""
        return self.builder.build_error_response(
            "insufficient-permissions",
            "Insufficient Permissions",
            403,
            detail,
            instance
        )

    def format_not_found_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format a not found error response."""
        return self.builder.build_error_response(
            "resource-not-found",
            "Resource Not Found",
            404,
            detail,
            instance
        )

    def format_conflict_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format a conflict error response."""
        return self.builder.build_error_response(
            "resource-conflict",
            "Resource Conflict",
            409,
            detail,
            instance
        )

    def format_no_criteria_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format the response for an organization without active criteria."""
        return self.builder.build_error_response(
            "no-criteria-configured",
            "No Criteria Configured",
            422,
            detail,
            instance
        )

    def format_service_unavailable_error(
        self,
        detail: str,
        instance: str,
        error_type: str = "service-unavailable"
    ) -> Dict[str, Any]:
        """Format a dependency outage response."""
        return self.builder.build_error_response(
            error_type,
            "Service Unavailable",
            503,
            detail,
            instance
        )

    def format_server_error(
        self,
        detail: str,
        instance: str
    ) -> Dict[str, Any]:
        """Format a server error response."""
        return self.builder.build_error_response(
            "internal-server-error",
            "Internal Server Error",
            500,
            detail,
            instance
        )


# Convenience function for creating HAL formatter
def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
