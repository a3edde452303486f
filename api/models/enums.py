# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the cell multiplication readiness engine.
"""

from enum import Enum


class CriteriaType(str, Enum):
    """Measurable aspects of a cell that a criterion can score."""
    MEMBER_COUNT = "member_count"
    MEETING_FREQUENCY = "meeting_frequency"
    AVERAGE_ATTENDANCE = "average_attendance"
    POTENTIAL_LEADERS = "potential_leaders"
    CELL_AGE_MONTHS = "cell_age_months"
    LEADER_MATURITY = "leader_maturity"
    GROWTH_RATE = "growth_rate"
    STABILITY_SCORE = "stability_score"


class ReadinessStatus(str, Enum):
    """Derived multiplication readiness status."""
    NOT_READY = "not_ready"
    PREPARING = "preparing"
    READY = "ready"
    OPTIMAL = "optimal"
    OVERDUE = "overdue"


class AlertType(str, Enum):
    """Alert kinds produced from readiness records."""
    OVERDUE_EVALUATION = "overdue_evaluation"
    STAGNANT_READY = "stagnant_ready"
    REGRESSING = "regressing"
    NEWLY_READY = "newly_ready"
    LOW_ATTENDANCE = "low_attendance"
    MISSING_LEADER = "missing_leader"
    SLOW_GROWTH = "slow_growth"


class PermissionAction(str, Enum):
    """Available permission actions."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EVALUATE = "evaluate"


class PermissionResource(str, Enum):
    """Available permission resources."""
    MULTIPLICATION = "multiplication"
    MULTIPLICATION_CRITERIA = "multiplication_criteria"
