#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Script to create the MongoDB indexes used by the readiness engine.

The unique indexes on criteria names and on one readiness record per cell
back the conflict and upsert behaviour of the API, so run this before the
first deployment against a new database.
"""

import sys
import os
import logging

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pymongo.errors import PyMongoError

from services.mongodb import (
    get_mongodb_service,
    close_mongodb_connection,
    CRITERIA_COLLECTION,
    READINESS_COLLECTION,
    HISTORY_COLLECTION,
    CELLS_COLLECTION,
    CELL_METRICS_COLLECTION
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

COLLECTIONS = (
    CRITERIA_COLLECTION,
    READINESS_COLLECTION,
    HISTORY_COLLECTION,
    CELLS_COLLECTION,
    CELL_METRICS_COLLECTION
)


def main() -> int:
    """Create indexes and list what each collection ends up with."""
    mongodb_service = get_mongodb_service()

    try:
        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            return 1

        logger.info(f"Connected to MongoDB {health['version']} - Database: {health['database']}")

        mongodb_service.create_indexes()

        for name in COLLECTIONS:
            indexes = sorted(mongodb_service.get_collection(name).index_information())
            logger.info(f"{name}: {', '.join(indexes)}")

        return 0

    except PyMongoError as e:
        logger.error(f"Failed to create indexes: {e}")
        return 1
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    sys.exit(main())
