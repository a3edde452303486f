# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the cell multiplication readiness engine.

This package contains pure business logic functions with no side effects.
Scoring, status derivation, alerting and dashboard aggregation are testable
without a database or a running application.
"""
