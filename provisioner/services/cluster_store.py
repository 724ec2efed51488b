"""
Cluster Store

Persistent cluster records over SQLAlchemy, returned as ClusterRecord models.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete as sql_delete
from sqlalchemy import update as sql_update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from provisioner.database import Cluster
from provisioner.exceptions import (
    ClusterNotFoundError,
    ConflictError,
    ForbiddenError,
    InternalError,
)
from provisioner.models.cluster import ClusterRecord, ClusterStatus, ClusterType

# Columns callers may change after creation
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "environment",
        "status",
        "deployment_status",
        "deployment_id",
        "stack_outputs",
        "deployed_at",
    }
)


class ClusterStore:
    """
    Cluster persistence.

    Responsibilities:
    - Record CRUD
    - Atomic compare-and-swap on status (the deploy guard)
    - CIDRs held by live clusters, for overlap checks
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Initialize store.

        Args:
            session_factory: SQLAlchemy sessionmaker (see database.create_session_factory)
        """
        self.session_factory = session_factory

    def get(self, cluster_id: str) -> ClusterRecord:
        """
        Get cluster by id.

        Raises:
            ClusterNotFoundError: If no record matches
        """
        db = self.session_factory()
        try:
            row = db.get(Cluster, cluster_id)
            if row is None:
                raise ClusterNotFoundError(cluster_id)
            return _to_record(row)
        finally:
            db.close()

    def list(
        self, region: Optional[str] = None, cluster_type: Optional[str] = None
    ) -> List[ClusterRecord]:
        """List clusters, optionally filtered by region and type."""
        db = self.session_factory()
        try:
            query = db.query(Cluster)
            if region:
                query = query.filter(Cluster.region == region)
            if cluster_type:
                query = query.filter(Cluster.type == cluster_type)
            return [_to_record(row) for row in query.order_by(Cluster.created_at)]
        finally:
            db.close()

    def create(
        self,
        name: str,
        cluster_type: ClusterType,
        environment: str,
        region: str,
        cidr: str,
        cluster_id: Optional[str] = None,
    ) -> ClusterRecord:
        """Insert a new cluster in the In-Active state."""
        db = self.session_factory()
        try:
            row = Cluster(
                cluster_id=cluster_id or str(uuid.uuid4()),
                name=name,
                type=cluster_type.value,
                environment=environment,
                region=region,
                cidr=cidr,
                status=ClusterStatus.IN_ACTIVE.value,
                stack_outputs={},
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return _to_record(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise InternalError("Failed to create cluster record", context=str(e))
        finally:
            db.close()

    def update(self, cluster_id: str, fields: Dict[str, Any]) -> ClusterRecord:
        """
        Unconditionally update fields on a cluster.

        Raises:
            ClusterNotFoundError: If no record matches
        """
        values = _column_values(fields)
        db = self.session_factory()
        try:
            row = db.get(Cluster, cluster_id)
            if row is None:
                raise ClusterNotFoundError(cluster_id)
            for key, value in values.items():
                setattr(row, key, value)
            db.commit()
            db.refresh(row)
            return _to_record(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise InternalError("Failed to update cluster record", context=str(e))
        finally:
            db.close()

    def compare_and_set(
        self,
        cluster_id: str,
        expected_status: ClusterStatus,
        fields: Dict[str, Any],
    ) -> ClusterRecord:
        """
        Update fields only if the status still equals expected_status.

        Runs as a single conditional UPDATE so two writers racing from the
        same observed status cannot both win.

        Raises:
            ConflictError: If the status changed since it was read
            ClusterNotFoundError: If no record matches
        """
        values = _column_values(fields)
        values["updated_at"] = datetime.now(timezone.utc)

        db = self.session_factory()
        try:
            result = db.execute(
                sql_update(Cluster)
                .where(Cluster.cluster_id == cluster_id)
                .where(Cluster.status == expected_status.value)
                .values(**values)
            )
            db.commit()
            won = result.rowcount == 1
        except SQLAlchemyError as e:
            db.rollback()
            raise InternalError("Failed to update cluster record", context=str(e))
        finally:
            db.close()

        if not won:
            current = self.get(cluster_id)
            raise ConflictError(
                f"Cluster '{cluster_id}' changed state concurrently",
                context=(
                    f"Expected {expected_status.value}, found {current.status.value}"
                ),
            )
        return self.get(cluster_id)

    def delete(
        self, cluster_id: str, expected_status: Optional[ClusterStatus] = None
    ) -> None:
        """
        Delete a cluster record.

        With expected_status the delete is a single conditional DELETE, so a
        writer that moved the cluster on since it was read keeps its record.

        Raises:
            ClusterNotFoundError: If no record matches
            ForbiddenError: If the status no longer equals expected_status
        """
        db = self.session_factory()
        try:
            if expected_status is None:
                row = db.get(Cluster, cluster_id)
                if row is None:
                    raise ClusterNotFoundError(cluster_id)
                db.delete(row)
                removed = True
            else:
                result = db.execute(
                    sql_delete(Cluster)
                    .where(Cluster.cluster_id == cluster_id)
                    .where(Cluster.status == expected_status.value)
                )
                removed = result.rowcount == 1
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise InternalError("Failed to delete cluster record", context=str(e))
        finally:
            db.close()

        if not removed:
            current = self.get(cluster_id)
            raise ForbiddenError(
                f"Cluster '{cluster_id}' cannot be deleted in status "
                f"'{current.status.value}'",
                context=f"Only {expected_status.value} clusters can be deleted",
            )

    def live_cidrs(self, region: str) -> List[str]:
        """CIDRs of every cluster record in a region."""
        db = self.session_factory()
        try:
            rows = db.query(Cluster.cidr).filter(Cluster.region == region).all()
            return [row.cidr for row in rows]
        finally:
            db.close()


def _column_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate field names and convert enums to stored values."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update cluster fields: {', '.join(sorted(unknown))}")

    values = {}
    for key, value in fields.items():
        if isinstance(value, (ClusterStatus, ClusterType)):
            value = value.value
        if key == "stack_outputs":
            value = dict(value or {})
        values[key] = value
    return values


def _to_record(row: Cluster) -> ClusterRecord:
    return ClusterRecord(
        cluster_id=row.cluster_id,
        name=row.name,
        type=ClusterType(row.type),
        environment=row.environment,
        region=row.region,
        cidr=row.cidr,
        status=ClusterStatus(row.status),
        deployment_status=row.deployment_status,
        deployment_id=row.deployment_id,
        stack_outputs=dict(row.stack_outputs or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
        deployed_at=row.deployed_at,
    )
