# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.

Unit and endpoint tests run against ``InMemoryMongoDBService``, a stand-in for
``MongoDBService`` that keeps documents in dictionaries and honours the unique
indexes the API relies on.
"""

import os
import copy
import pytest
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional
from bson import ObjectId

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'celulas_test'

from models.entities import Cell, CellMetrics, Criterion
from services.mongodb import (
    PaginationResult,
    CRITERIA_COLLECTION,
    READINESS_COLLECTION,
    CELLS_COLLECTION
)
from services.metrics import MetricsCollector
from middleware.error_handler import MetricsUnavailableException

NOW = datetime(2024, 6, 1, 12, 0, 0)

UNIQUE_KEYS = {
    CRITERIA_COLLECTION: ("organizationId", "criteriaType", "name"),
    READINESS_COLLECTION: ("organizationId", "cellId"),
}


def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        value = document.get(key)
        if isinstance(condition, dict):
            for operator, argument in condition.items():
                if operator == "$in" and value not in argument:
                    return False
                if operator == "$gte" and (value is None or value < argument):
                    return False
        elif value != condition:
            return False
    return True


def _sorted(documents: List[Dict], sort) -> List[Dict]:
    documents = list(documents)
    for key, direction in reversed(sort or []):
        key = "id" if key == "_id" else key
        documents.sort(key=lambda d: d.get(key), reverse=direction < 0)
    return documents


class InMemoryMongoDBService:
    """Dictionary backed replacement for MongoDBService."""

    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.healthy = True

    def health_check(self) -> Dict[str, Any]:
        if self.healthy:
            return {'status': 'healthy', 'ping': True, 'version': 'in-memory', 'database': 'celulas_test'}
        return {'status': 'unhealthy', 'error': 'connection refused', 'database': 'celulas_test'}

    def _violates_unique(self, collection: str, document: Dict, ignore_id: Optional[str] = None) -> bool:
        keys = UNIQUE_KEYS.get(collection)
        if not keys:
            return False
        signature = tuple(document.get(k) for k in keys)
        return any(
            tuple(other.get(k) for k in keys) == signature
            for other in self.collections[collection]
            if other["id"] != ignore_id
        )

    def seed(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a document exactly as given."""
        document = copy.deepcopy(document)
        document.setdefault("id", str(ObjectId()))
        self.collections[collection].append(document)
        return document["id"]

    def create(self, collection: str, document: Dict, user_id: str) -> str:
        document = copy.deepcopy(document)
        document.setdefault("id", str(ObjectId()))
        document.update({
            "createdAt": NOW, "createdBy": user_id,
            "updatedAt": NOW, "updatedBy": user_id
        })
        if self._violates_unique(collection, document):
            raise ValueError("Document with this identifier already exists")
        self.collections[collection].append(document)
        return document["id"]

    def insert(self, collection: str, document: Dict) -> str:
        return self.seed(collection, document)

    def find_by_org(self, collection: str, org_id: str, filters: Dict = None,
                    sort=None, limit: int = 0) -> List[Dict]:
        query = {"organizationId": org_id, **(filters or {})}
        documents = _sorted([d for d in self.collections[collection] if _matches(d, query)], sort)
        if limit:
            documents = documents[:limit]
        return copy.deepcopy(documents)

    def find_one_by_org(self, collection: str, org_id: str, doc_id: str) -> Optional[Dict]:
        return self.find_one_by_org_filter(collection, org_id, {"id": doc_id})

    def find_one_by_org_filter(self, collection: str, org_id: str, filters: Dict) -> Optional[Dict]:
        documents = self.find_by_org(collection, org_id, filters)
        return documents[0] if documents else None

    def update_by_org(self, collection: str, org_id: str, doc_id: str,
                      updates: Dict, user_id: str) -> bool:
        for document in self.collections[collection]:
            if document["id"] == doc_id and document.get("organizationId") == org_id:
                candidate = {**document, **updates, "updatedAt": NOW, "updatedBy": user_id}
                if self._violates_unique(collection, candidate, ignore_id=doc_id):
                    raise ValueError("Document with this identifier already exists")
                document.update(candidate)
                return True
        return False

    def upsert_by_org(self, collection: str, org_id: str, key: Dict, document: Dict) -> bool:
        document = copy.deepcopy(document)
        document["organizationId"] = org_id
        document.pop("id", None)
        query = {"organizationId": org_id, **key}
        for index, existing in enumerate(self.collections[collection]):
            if _matches(existing, query):
                document["id"] = existing["id"]
                self.collections[collection][index] = document
                return False
        document["id"] = str(ObjectId())
        self.collections[collection].append(document)
        return True

    def hard_delete_by_org(self, collection: str, org_id: str, doc_id: str) -> bool:
        before = len(self.collections[collection])
        self.collections[collection] = [
            d for d in self.collections[collection]
            if not (d["id"] == doc_id and d.get("organizationId") == org_id)
        ]
        return len(self.collections[collection]) < before

    def paginate_by_org(self, collection: str, org_id: str, page: int = 1, page_size: int = 20,
                        filters: Dict = None, sort_by: str = "createdAt", sort_order: int = -1) -> PaginationResult:
        documents = self.find_by_org(collection, org_id, filters, sort=[(sort_by, sort_order), ("_id", 1)])
        start = (page - 1) * page_size
        return PaginationResult(documents[start:start + page_size], len(documents), page, page_size)


class StubMetricsCollector(MetricsCollector):
    """Serves metrics from a dictionary; listed cells fail as unavailable."""

    source = "stub"

    def __init__(self, metrics: Optional[Dict[str, CellMetrics]] = None):
        super().__init__()
        self.metrics = metrics or {}
        self.unavailable = set()
        self.calls = []

    def _fetch(self, org_id: str, cell_id: str) -> CellMetrics:
        self.calls.append(cell_id)
        if cell_id in self.unavailable or cell_id not in self.metrics:
            raise MetricsUnavailableException(f"No metrics recorded for cell {cell_id}", cell_id)
        return self.metrics[cell_id]


class FakeClock:
    """Controllable clock for services."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def org_id():
    """Organization under test."""
    return str(ObjectId())


@pytest.fixture
def mongodb():
    """Empty in-memory MongoDB service."""
    return InMemoryMongoDBService()


@pytest.fixture
def clock():
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def metrics_collector():
    """Metrics collector with no data yet."""
    return StubMetricsCollector()


def make_criterion(org_id: str, criteria_type: str, threshold: float, weight: float,
                   required: bool = True, name: Optional[str] = None, active: bool = True) -> Criterion:
    """Build a criterion entity."""
    return Criterion(
        organization_id=org_id,
        name=name or criteria_type.replace("_", " ").title(),
        criteria_type=criteria_type,
        threshold_value=threshold,
        weight=weight,
        is_required=required,
        is_active=active,
        created_by="tester",
        updated_by="tester"
    )


def make_metrics(cell_id: str, **values) -> CellMetrics:
    """Build cell metrics."""
    return CellMetrics(cell_id=cell_id, **values)


def add_cell(mongodb: InMemoryMongoDBService, org_id: str, name: str,
             supervisor_id: Optional[str] = None) -> str:
    """Store a cell and return its ID."""
    cell = Cell(id=str(ObjectId()), organization_id=org_id, name=name, supervisor_id=supervisor_id)
    return mongodb.seed(CELLS_COLLECTION, cell.model_dump(by_alias=True))


def add_criterion(mongodb: InMemoryMongoDBService, criterion: Criterion) -> str:
    """Store a criterion and return its ID."""
    return mongodb.seed(CRITERIA_COLLECTION, criterion.to_document())


@pytest.fixture
def scenario_criteria(org_id):
    """Member count and attendance required, leader maturity optional."""
    return [
        make_criterion(org_id, "member_count", 12, 0.4, required=True),
        make_criterion(org_id, "average_attendance", 70, 0.3, required=True),
        make_criterion(org_id, "leader_maturity", 80, 0.3, required=False),
    ]
