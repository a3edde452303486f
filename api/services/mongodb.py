# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with multi-tenant operations and connection pooling.
"""

import os
import logging
from datetime import datetime
from typing import List, Dict, Optional, Any, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

CRITERIA_COLLECTION = "multiplication_criteria"
READINESS_COLLECTION = "multiplication_readiness"
HISTORY_COLLECTION = "readiness_history"
CELLS_COLLECTION = "cells"
CELL_METRICS_COLLECTION = "cell_metrics"


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, page: int, page_size: int):
        self.items = items
        self.total = total
        self.page = page
        self.page_size = page_size
        self.total_pages = (total + page_size - 1) // page_size
        self.has_next = page < self.total_pages
        self.has_prev = page > 1


def _expose_id(document: Dict) -> Dict:
    """Replace the ObjectId ``_id`` with a string ``id``."""
    if "_id" in document:
        document["id"] = str(document["_id"])
        del document["_id"]
    return document


class MongoDBService:
    """MongoDB service with multi-tenant operations and connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/celulas_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'celulas_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        # Readiness snapshots older than this are expired by MongoDB; 0 keeps them forever
        self.history_retention_days = int(os.getenv('READINESS_HISTORY_RETENTION_DAYS', '365'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def _validate_object_id(self, doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    def _build_org_query(self, org_id: str, filters: Dict = None) -> Dict:
        """Build organization-scoped query with optional filters."""
        query = {"organizationId": org_id}

        if filters:
            query.update(filters)

        return query

    def _add_timestamps(self, document: Dict, user_id: str, is_update: bool = False) -> Dict:
        """Add creation and update timestamps to document."""
        now = datetime.utcnow()

        if not is_update:
            document["createdAt"] = now
            document["createdBy"] = user_id

        document["updatedAt"] = now
        document["updatedBy"] = user_id

        return document

    # CRUD Operations with Organization Scoping

    def create(self, collection: str, document: Dict, user_id: str) -> str:
        """
        Create a new document with organization scoping.

        A string ``id`` on the document becomes its ObjectId ``_id``.

        Raises:
            ValueError: If a unique index rejects the document
        """
        try:
            document = self._add_timestamps(dict(document), user_id)

            if "id" in document:
                document["_id"] = self._validate_object_id(document.pop("id"))
            if "_id" not in document:
                document["_id"] = ObjectId()

            collection_obj = self.get_collection(collection)
            result = collection_obj.insert_one(document)

            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {collection}: {e}")
            raise ValueError("Document with this identifier already exists")

    def insert(self, collection: str, document: Dict) -> str:
        """Append a document as-is, without audit fields."""
        collection_obj = self.get_collection(collection)
        result = collection_obj.insert_one(dict(document))
        logger.debug(f"Inserted document in {collection}: {result.inserted_id}")
        return str(result.inserted_id)

    def find_by_org(self, collection: str, org_id: str, filters: Dict = None,
                    sort: List[Tuple[str, int]] = None, limit: int = 0) -> List[Dict]:
        """Find documents by organization with optional filters and sorting."""
        try:
            query = self._build_org_query(org_id, filters)
            collection_obj = self.get_collection(collection)

            cursor = collection_obj.find(query)
            if sort:
                cursor = cursor.sort(sort)
            if limit:
                cursor = cursor.limit(limit)

            documents = [_expose_id(doc) for doc in cursor]

            logger.debug(f"Found {len(documents)} documents in {collection} for org {org_id}")
            return documents

        except Exception as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise

    def find_one_by_org(self, collection: str, org_id: str, doc_id: str) -> Optional[Dict]:
        """Find a single document by organization and ID."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return None

        return self.find_one_by_org_filter(collection, org_id, {"_id": object_id})

    def find_one_by_org_filter(self, collection: str, org_id: str, filters: Dict) -> Optional[Dict]:
        """Find a single document by organization and arbitrary filters."""
        try:
            query = self._build_org_query(org_id, filters)
            collection_obj = self.get_collection(collection)
            document = collection_obj.find_one(query)

            if document:
                return _expose_id(document)

            logger.debug(f"No document matching {filters} in {collection} for org {org_id}")
            return None

        except Exception as e:
            logger.error(f"Failed to find document in {collection}: {e}")
            raise

    def update_by_org(self, collection: str, org_id: str, doc_id: str,
                      updates: Dict, user_id: str) -> bool:
        """
        Update a document by organization and ID.

        Raises:
            ValueError: If a unique index rejects the update
        """
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return False

        try:
            query = self._build_org_query(org_id, {"_id": object_id})
            updates = self._add_timestamps(dict(updates), user_id, is_update=True)

            collection_obj = self.get_collection(collection)
            result = collection_obj.update_one(query, {"$set": updates})

            if result.matched_count > 0:
                logger.info(f"Updated document {doc_id} in {collection}")
                return True

            logger.warning(f"No document updated for {doc_id} in {collection}")
            return False

        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {collection}: {e}")
            raise ValueError("Document with this identifier already exists")

    def upsert_by_org(self, collection: str, org_id: str, key: Dict, document: Dict) -> bool:
        """
        Replace the single document matching ``key`` within an organization,
        inserting it when absent.

        Returns:
            True when a new document was inserted
        """
        try:
            query = self._build_org_query(org_id, key)
            document = dict(document)
            document["organizationId"] = org_id
            document.pop("_id", None)
            document.pop("id", None)

            collection_obj = self.get_collection(collection)
            result = collection_obj.replace_one(query, document, upsert=True)

            inserted = result.upserted_id is not None
            logger.debug(
                f"Upserted document in {collection}",
                extra={"organization_id": org_id, "key": key, "inserted": inserted}
            )
            return inserted

        except Exception as e:
            logger.error(f"Failed to upsert document in {collection}: {e}")
            raise

    def hard_delete_by_org(self, collection: str, org_id: str, doc_id: str) -> bool:
        """Hard delete a document."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return False

        query = self._build_org_query(org_id, {"_id": object_id})
        collection_obj = self.get_collection(collection)
        result = collection_obj.delete_one(query)

        if result.deleted_count > 0:
            logger.warning(f"Hard deleted document {doc_id} in {collection}")
            return True

        logger.warning(f"No document hard deleted for {doc_id} in {collection}")
        return False

    def paginate_by_org(self, collection: str, org_id: str, page: int = 1, page_size: int = 20,
                        filters: Dict = None, sort_by: str = "createdAt", sort_order: int = -1) -> PaginationResult:
        """Paginate documents by organization with sorting and filtering."""
        try:
            query = self._build_org_query(org_id, filters)
            collection_obj = self.get_collection(collection)

            skip = (page - 1) * page_size
            total = collection_obj.count_documents(query)

            # Secondary sort on _id keeps pages stable across equal keys
            cursor = (
                collection_obj.find(query)
                .sort([(sort_by, sort_order), ("_id", ASCENDING)])
                .skip(skip)
                .limit(page_size)
            )
            documents = [_expose_id(doc) for doc in cursor]

            logger.debug(f"Paginated {len(documents)} documents from {collection} (page {page})")
            return PaginationResult(documents, total, page, page_size)

        except Exception as e:
            logger.error(f"Failed to paginate documents in {collection}: {e}")
            raise

    # Index Management

    def create_indexes(self) -> None:
        """Create performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            # Criteria indexes
            criteria = self.get_collection(CRITERIA_COLLECTION)
            criteria.create_index(
                [("organizationId", ASCENDING), ("criteriaType", ASCENDING), ("name", ASCENDING)],
                unique=True
            )
            criteria.create_index([("organizationId", ASCENDING), ("isActive", ASCENDING)])

            # Readiness indexes: one record per cell
            readiness = self.get_collection(READINESS_COLLECTION)
            readiness.create_index(
                [("organizationId", ASCENDING), ("cellId", ASCENDING)],
                unique=True
            )
            readiness.create_index([("organizationId", ASCENDING), ("readinessScore", DESCENDING)])
            readiness.create_index([("organizationId", ASCENDING), ("status", ASCENDING)])

            # History indexes
            history = self.get_collection(HISTORY_COLLECTION)
            history.create_index(
                [("organizationId", ASCENDING), ("cellId", ASCENDING), ("evaluatedAt", DESCENDING)]
            )
            if self.history_retention_days > 0:
                history.create_index(
                    [("evaluatedAt", ASCENDING)],
                    expireAfterSeconds=self.history_retention_days * 86400
                )

            # Cell lookup indexes
            cells = self.get_collection(CELLS_COLLECTION)
            cells.create_index([("organizationId", ASCENDING), ("supervisorId", ASCENDING)])

            metrics = self.get_collection(CELL_METRICS_COLLECTION)
            metrics.create_index([("organizationId", ASCENDING), ("cellId", ASCENDING)], unique=True)

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
