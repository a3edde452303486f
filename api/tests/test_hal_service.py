# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting utilities.
"""

import pytest
from services.hal import (
    HalLinkBuilder, PaginationLinkBuilder, AffordanceLinkBuilder,
    HalFormatter, create_hal_formatter
)
from models.responses import HalLink
from domain.authorization import (
    READ_READINESS,
    EVALUATE_READINESS,
    UPDATE_CRITERIA,
    DELETE_CRITERIA
)

BASE_URL = "https://api.example.com"


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_basic_link(self):
        """Test building a basic HAL link."""
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_link("/api/multiplication/criteria/123")

        assert isinstance(link, HalLink)
        assert link.href == "https://api.example.com/api/multiplication/criteria/123"
        assert link.method == "GET"
        assert link.type is None

    def test_trailing_slash_in_base_url(self):
        builder = HalLinkBuilder("https://api.example.com/")

        assert builder.build_link("api/healthz").href == "https://api.example.com/api/healthz"

    def test_build_link_with_method_and_type(self):
        builder = HalLinkBuilder(BASE_URL)

        link = builder.build_link("/x", method="PUT", content_type="application/json", title="Update")

        assert link.method == "PUT"
        assert link.type == "application/json"
        assert link.title == "Update"


class TestPaginationLinkBuilder:
    """Test pagination link generation."""

    def test_first_page(self):
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links("/api/multiplication/readiness", 1, 3, 20)

        assert set(links) == {"self", "next", "last"}
        assert links["next"].href.endswith("?page=2&page_size=20")

    def test_last_page_keeps_filters(self):
        builder = PaginationLinkBuilder(BASE_URL)

        links = builder.build_pagination_links(
            "/api/multiplication/readiness", 3, 3, 20,
            {"status": "ready", "cell_ids": ["a", "b"], "min_score": None}
        )

        assert set(links) == {"self", "first", "prev"}
        assert links["prev"].href.endswith("?status=ready&cell_ids=a&cell_ids=b&page=2&page_size=20")

    def test_single_page(self):
        links = PaginationLinkBuilder(BASE_URL).build_pagination_links("/x", 1, 1, 20)

        assert set(links) == {"self"}


class TestAffordanceLinkBuilder:
    """Test permission-dependent affordances."""

    def setup_method(self):
        self.builder = AffordanceLinkBuilder(BASE_URL)

    def test_criterion_read_only(self):
        links = self.builder.build_criterion_affordances("c1", [READ_READINESS])

        assert set(links) == {"self", "collection"}

    def test_criterion_full_access(self):
        links = self.builder.build_criterion_affordances("c1", [UPDATE_CRITERIA, DELETE_CRITERIA])

        assert links["update"].method == "PUT"
        assert links["delete"].method == "DELETE"
        assert links["delete"].href == f"{BASE_URL}/api/multiplication/criteria/c1"

    def test_readiness_evaluate_link(self):
        links = self.builder.build_readiness_affordances("cell-9", [EVALUATE_READINESS])

        assert links["self"].href == f"{BASE_URL}/api/multiplication/readiness/cell-9"
        assert links["history"].href == f"{BASE_URL}/api/multiplication/readiness/cell-9/history"
        assert links["evaluate"].href == f"{BASE_URL}/api/multiplication/evaluate/cell-9"
        assert links["evaluate"].method == "POST"

    def test_readiness_without_evaluate_permission(self):
        links = self.builder.build_readiness_affordances("cell-9", [READ_READINESS])

        assert "evaluate" not in links


class TestHalFormatter:
    """Test the high-level formatter."""

    def setup_method(self):
        self.formatter = create_hal_formatter(BASE_URL)

    def test_factory(self):
        assert isinstance(self.formatter, HalFormatter)

    def test_format_criterion_keeps_data(self):
        response = self.formatter.format_criterion({"id": "c1", "name": "Growth"}, [])

        assert response["name"] == "Growth"
        assert response["_links"]["self"] == {
            "href": f"{BASE_URL}/api/multiplication/criteria/c1",
            "method": "GET",
            "title": "Self",
            "templated": False
        }

    def test_format_criteria_collection(self):
        response = self.formatter.format_criteria_collection(
            [{"id": "c1"}, {"id": "c2"}], [READ_READINESS], {"active_only": True}
        )

        assert response["total"] == 2
        assert response["total_pages"] == 1
        assert [item["id"] for item in response["_embedded"]["items"]] == ["c1", "c2"]
        assert "active_only=True" in response["_links"]["self"]["href"]

    def test_format_empty_criteria_collection(self):
        response = self.formatter.format_criteria_collection([], [])

        assert response["total"] == 0
        assert response["_embedded"]["items"] == []

    def test_format_readiness_collection(self):
        response = self.formatter.format_readiness_collection(
            [{"cell_id": "a"}], total=45, page=2, page_size=20, user_permissions=[]
        )

        assert response["total_pages"] == 3
        assert set(response["_links"]) == {"self", "first", "prev", "next", "last"}
        assert response["_embedded"]["items"][0]["_links"]["self"]["href"].endswith("/readiness/a")

    @pytest.mark.parametrize("method,args,error_type,status", [
        ("format_authentication_error", ("Missing token", "/x"), "authentication-required", 401),
        ("format_authorization_error", ("Denied", "/x"), "insufficient-permissions", 403),
        ("format_not_found_error", ("Missing", "/x"), "resource-not-found", 404),
        ("format_conflict_error", ("Duplicate", "/x"), "resource-conflict", 409),
        ("format_no_criteria_error", ("None", "/x"), "no-criteria-configured", 422),
        ("format_service_unavailable_error", ("Down", "/x"), "service-unavailable", 503),
        ("format_server_error", ("Boom", "/x"), "internal-server-error", 500),
    ])
    def test_error_documents(self, method, args, error_type, status):
        response = getattr(self.formatter, method)(*args)

        assert response["type"] == f"https://api.celulas.app/problems/{error_type}"
        assert response["status"] == status
        assert response["detail"] == args[0]
        assert response["instance"] == "/x"
        assert "help" in response["_links"]

    def test_validation_error_lists_fields(self):
        errors = [{"field": "weight", "message": "too big", "type": "less_than_equal"}]

        response = self.formatter.format_validation_error("Invalid", "/x", errors)

        assert response["errors"] == errors
        assert "schema" in response["_links"]

    def test_metrics_unavailable_error_type(self):
        response = self.formatter.format_service_unavailable_error("Timeout", "/x", "metrics-unavailable")

        assert response["type"].endswith("/metrics-unavailable")
        assert response["status"] == 503

    def test_no_criteria_error_points_to_criteria(self):
        response = self.formatter.format_no_criteria_error("None", "/x")

        assert response["_links"]["criteria"]["href"] == f"{BASE_URL}/api/multiplication/criteria"
        assert response["_links"]["criteria"]["method"] == "POST"
