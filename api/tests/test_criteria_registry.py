# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the criteria registry service.
"""

import pytest
from bson import ObjectId

from services.criteria_registry import CriteriaRegistry
from services.mongodb import CRITERIA_COLLECTION
from middleware.error_handler import NotFoundException, ConflictException, ValidationException

USER_ID = "admin-1"


def criterion_fields(**overrides):
    fields = {
        "name": "Active members",
        "criteria_type": "member_count",
        "threshold_value": 12,
        "weight": 0.4,
        "is_required": True
    }
    fields.update(overrides)
    return fields


class TestCriteriaRegistry:
    """Criteria CRUD scoped to one organization."""

    @pytest.fixture(autouse=True)
    def setup(self, mongodb, org_id):
        self.mongodb = mongodb
        self.org_id = org_id
        self.registry = CriteriaRegistry(mongodb)

    def test_create_and_get(self):
        result = self.registry.create_criterion(self.org_id, criterion_fields(), USER_ID)

        stored = self.registry.get_criterion(self.org_id, result.criterion.id)
        assert stored.name == "Active members"
        assert stored.criteria_type == "member_count"
        assert stored.is_active is True
        assert stored.created_by == USER_ID
        assert result.warnings == []

    def test_create_strips_name(self):
        result = self.registry.create_criterion(self.org_id, criterion_fields(name="  Growth  "), USER_ID)

        assert result.criterion.name == "Growth"

    @pytest.mark.parametrize("overrides", [
        {"weight": 0},
        {"weight": 1.5},
        {"threshold_value": -1},
        {"criteria_type": "baptisms"},
        {"name": "   "},
    ])
    def test_invalid_input_is_rejected(self, overrides):
        with pytest.raises(ValidationException) as exc_info:
            self.registry.create_criterion(self.org_id, criterion_fields(**overrides), USER_ID)

        assert exc_info.value.validation_errors
        assert self.mongodb.collections[CRITERIA_COLLECTION] == []

    def test_weight_over_budget_is_only_a_warning(self):
        self.registry.create_criterion(self.org_id, criterion_fields(weight=0.7), USER_ID)
        result = self.registry.create_criterion(
            self.org_id, criterion_fields(name="Attendance", criteria_type="average_attendance", weight=0.5),
            USER_ID
        )

        assert result.warnings == ["Active criteria weights sum to 1.20, which exceeds 1.00"]
        assert len(self.registry.list_criteria(self.org_id)) == 2

    def test_duplicate_name_for_type_conflicts(self):
        self.registry.create_criterion(self.org_id, criterion_fields(), USER_ID)

        with pytest.raises(ConflictException):
            self.registry.create_criterion(self.org_id, criterion_fields(weight=0.1), USER_ID)

    def test_same_name_in_other_organization_is_allowed(self):
        self.registry.create_criterion(self.org_id, criterion_fields(), USER_ID)

        result = self.registry.create_criterion(str(ObjectId()), criterion_fields(), USER_ID)

        assert result.criterion.id

    def test_list_filters_and_order(self):
        self.registry.create_criterion(self.org_id, criterion_fields(name="B", criteria_type="growth_rate"), USER_ID)
        self.registry.create_criterion(self.org_id, criterion_fields(name="A", criteria_type="growth_rate",
                                                                     is_active=False), USER_ID)
        self.registry.create_criterion(self.org_id, criterion_fields(name="C"), USER_ID)

        everything = self.registry.list_criteria(self.org_id)
        active = self.registry.list_active_criteria(self.org_id)
        growth = self.registry.list_criteria(self.org_id, criteria_type="growth_rate")

        assert [c.name for c in everything] == ["A", "B", "C"]
        assert [c.name for c in active] == ["B", "C"]
        assert [c.name for c in growth] == ["A", "B"]

    def test_tenant_isolation(self):
        result = self.registry.create_criterion(self.org_id, criterion_fields(), USER_ID)
        other_org = str(ObjectId())

        assert self.registry.list_criteria(other_org) == []
        with pytest.raises(NotFoundException):
            self.registry.get_criterion(other_org, result.criterion.id)
        with pytest.raises(NotFoundException):
            self.registry.delete_criterion(other_org, result.criterion.id)

    def test_partial_update(self):
        created = self.registry.create_criterion(self.org_id, criterion_fields(), USER_ID)

        result = self.registry.update_criterion(
            self.org_id, created.criterion.id, {"weight": 0.25, "is_active": False}, "admin-2"
        )

        assert result.criterion.weight == 0.25
        assert result.criterion.is_active is False
        assert result.criterion.threshold_value == 12
        assert result.criterion.updated_by == "admin-2"

    def test_empty_update_is_rejected(self):
        created = self.registry.create_criterion(self.org_id, criterion_fields(), USER_ID)

        with pytest.raises(ValidationException):
            self.registry.update_criterion(self.org_id, created.criterion.id, {}, USER_ID)

    def test_update_into_duplicate_conflicts(self):
        self.registry.create_criterion(self.org_id, criterion_fields(), USER_ID)
        other = self.registry.create_criterion(self.org_id, criterion_fields(name="Other"), USER_ID)

        with pytest.raises(ConflictException):
            self.registry.update_criterion(self.org_id, other.criterion.id, {"name": "Active members"}, USER_ID)

    def test_update_missing_criterion(self):
        with pytest.raises(NotFoundException):
            self.registry.update_criterion(self.org_id, str(ObjectId()), {"weight": 0.2}, USER_ID)

    def test_delete(self):
        created = self.registry.create_criterion(self.org_id, criterion_fields(), USER_ID)

        self.registry.delete_criterion(self.org_id, created.criterion.id)

        assert self.registry.list_criteria(self.org_id) == []
        with pytest.raises(NotFoundException):
            self.registry.delete_criterion(self.org_id, created.criterion.id)
