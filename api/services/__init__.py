# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, external integrations and orchestration.

Only the persistence layer is re-exported here; the other service modules
depend on the middleware exceptions and are imported directly.
"""

from .mongodb import MongoDBService, PaginationResult, get_mongodb_service, close_mongodb_connection

__all__ = [
    "MongoDBService",
    "PaginationResult",
    "get_mongodb_service",
    "close_mongodb_connection"
]
