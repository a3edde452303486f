#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Setup script for local development data.

Creates one organization with three cells, their metrics and a criteria set,
so the readiness endpoints have something to evaluate. Existing data of the
same organization is removed first.

Usage:
    python scripts/seed_dev_data.py [org_id]
"""

import os
import sys
from datetime import datetime

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bson import ObjectId

from models.entities import Cell, CellMetrics
from services.mongodb import (
    MongoDBService,
    CRITERIA_COLLECTION,
    READINESS_COLLECTION,
    HISTORY_COLLECTION,
    CELLS_COLLECTION,
    CELL_METRICS_COLLECTION
)
from services.criteria_registry import CriteriaRegistry

SEED_USER = "seed-script"

CRITERIA = [
    {"name": "Membros ativos", "criteria_type": "member_count",
     "threshold_value": 12, "weight": 0.3, "is_required": True},
    {"name": "Frequência média", "criteria_type": "average_attendance",
     "threshold_value": 70, "weight": 0.25, "is_required": True},
    {"name": "Líderes em formação", "criteria_type": "potential_leaders",
     "threshold_value": 2, "weight": 0.25, "is_required": True},
    {"name": "Maturidade do líder", "criteria_type": "leader_maturity",
     "threshold_value": 80, "weight": 0.1, "is_required": False},
    {"name": "Crescimento mensal", "criteria_type": "growth_rate",
     "threshold_value": 5, "weight": 0.1, "is_required": False},
]

CELLS = [
    ("Célula Betel", dict(member_count=15, meeting_frequency_pct=95, average_attendance_pct=82,
                          potential_leader_count=3, age_in_months=20, leader_maturity_score=85,
                          growth_rate_pct=6, stability_score=90)),
    ("Célula Siló", dict(member_count=10, meeting_frequency_pct=80, average_attendance_pct=72,
                         potential_leader_count=1, age_in_months=9, leader_maturity_score=60,
                         growth_rate_pct=3, stability_score=70)),
    ("Célula Emaús", dict(member_count=6, meeting_frequency_pct=60, average_attendance_pct=55,
                          potential_leader_count=0, age_in_months=4, leader_maturity_score=40,
                          growth_rate_pct=None, stability_score=50)),
]


def setup_dev_data(org_id: str):
    """Seed cells, metrics and criteria for one organization."""
    print(f"Setting up development data for organization {org_id}...")

    mongo_svc = MongoDBService()
    registry = CriteriaRegistry(mongo_svc)

    print("Clearing existing organization data...")
    for collection in (CRITERIA_COLLECTION, READINESS_COLLECTION, HISTORY_COLLECTION,
                       CELLS_COLLECTION, CELL_METRICS_COLLECTION):
        mongo_svc.get_collection(collection).delete_many({"organizationId": org_id})

    print("Creating cells and metrics...")
    supervisor_id = str(ObjectId())
    for name, values in CELLS:
        cell_id = ObjectId()
        cell = Cell(id=str(cell_id), organization_id=org_id, name=name, supervisor_id=supervisor_id)
        cell_doc = cell.model_dump(by_alias=True, exclude={"id"})
        cell_doc["_id"] = cell_id
        mongo_svc.get_collection(CELLS_COLLECTION).insert_one(cell_doc)

        metrics = CellMetrics(cell_id=str(cell_id), collected_at=datetime.utcnow(), **values)
        metrics_doc = metrics.model_dump(by_alias=True)
        metrics_doc["organizationId"] = org_id
        mongo_svc.get_collection(CELL_METRICS_COLLECTION).insert_one(metrics_doc)
        print(f"  {name}: {cell_id}")

    print("Creating criteria...")
    for fields in CRITERIA:
        result = registry.create_criterion(org_id, fields, SEED_USER)
        print(f"  {result.criterion.name} ({result.criterion.criteria_type})")
        for warning in result.warnings:
            print(f"  warning: {warning}")

    print(f"Supervisor ID for all cells: {supervisor_id}")
    mongo_svc.close_connection()
    print("Development data ready.")


if __name__ == "__main__":
    setup_dev_data(sys.argv[1] if len(sys.argv) > 1 else str(ObjectId()))
