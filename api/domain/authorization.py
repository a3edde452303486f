# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for multiplication readiness.

This module contains pure functions for permission checks and for organization
and supervisor scoping. Criteria listing is covered by the read permission.
"""

from typing import List, Optional
from dataclasses import dataclass

from models.entities import UserContext
from models.enums import PermissionAction, PermissionResource


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    missing_permissions: List[str] = None


def build_permission(resource: PermissionResource, action: PermissionAction) -> str:
    """Build a ``resource:action`` permission string."""
    return f"{resource.value}:{action.value}"


READ_READINESS = build_permission(PermissionResource.MULTIPLICATION, PermissionAction.READ)
EVALUATE_READINESS = build_permission(PermissionResource.MULTIPLICATION, PermissionAction.EVALUATE)
CREATE_CRITERIA = build_permission(PermissionResource.MULTIPLICATION_CRITERIA, PermissionAction.CREATE)
UPDATE_CRITERIA = build_permission(PermissionResource.MULTIPLICATION_CRITERIA, PermissionAction.UPDATE)
DELETE_CRITERIA = build_permission(PermissionResource.MULTIPLICATION_CRITERIA, PermissionAction.DELETE)


def check_permission(user_context: UserContext, required_permission: str) -> AuthorizationResult:
    """
    Check if user has a specific permission.

    Args:
        user_context: User context with permissions
        required_permission: Permission string to check

    Returns:
        AuthorizationResult indicating if permission is granted
    """
    if required_permission in user_context.permissions:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Missing required permission: {required_permission}",
        missing_permissions=[required_permission]
    )


def check_cell_access(user_context: UserContext, cell_id: str) -> AuthorizationResult:
    """
    Check if a supervisor-scoped user may see a cell.

    Users without ``supervised_cell_ids`` see every cell of their organization.
    """
    if user_context.supervised_cell_ids is None:
        return AuthorizationResult(allowed=True)

    if cell_id in user_context.supervised_cell_ids:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Cell {cell_id} is outside the supervised cells"
    )


def scoped_cell_ids(user_context: UserContext, requested: Optional[List[str]] = None) -> Optional[List[str]]:
    """
    Combine a requested cell filter with the user's supervisor scope.

    Args:
        user_context: Caller
        requested: Cell IDs asked for explicitly, if any

    Returns:
        Cell IDs to restrict to, or None for no restriction
    """
    supervised = user_context.supervised_cell_ids

    if supervised is None:
        return requested

    if requested is None:
        return list(supervised)

    allowed = set(supervised)
    return [cell_id for cell_id in requested if cell_id in allowed]
