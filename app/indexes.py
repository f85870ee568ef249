# app/indexes.py
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from app.models.database_model import IndexReport, IndexResult, IndexSpec
from app.utils.logger import logger


INDEX_SPECS: List[IndexSpec] = [
    # User indexes
    IndexSpec(collection="users", keys=[("email", ASCENDING)], unique=True),
    IndexSpec(collection="users", keys=[("enrollmentId", ASCENDING)], unique=True),
    IndexSpec(collection="users", keys=[("role", ASCENDING)]),
    IndexSpec(collection="users", keys=[("status", ASCENDING)]),
    IndexSpec(collection="users", keys=[("course", ASCENDING)]),
    # Course indexes
    IndexSpec(collection="courses", keys=[("name", ASCENDING)]),
    IndexSpec(
        collection="courses", keys=[("category", ASCENDING), ("status", ASCENDING)]
    ),
    IndexSpec(collection="courses", keys=[("status", ASCENDING)]),
    IndexSpec(collection="courses", keys=[("instructorId", ASCENDING)]),
    # Payment indexes
    IndexSpec(collection="payments", keys=[("paymentId", ASCENDING)], unique=True),
    IndexSpec(
        collection="payments", keys=[("studentId", ASCENDING), ("status", ASCENDING)]
    ),
    IndexSpec(collection="payments", keys=[("orderId", ASCENDING)]),
    IndexSpec(collection="payments", keys=[("createdAt", DESCENDING)]),
    IndexSpec(collection="payments", keys=[("month", ASCENDING)]),
    # Class indexes
    IndexSpec(
        collection="classes", keys=[("startTime", ASCENDING), ("status", ASCENDING)]
    ),
    IndexSpec(
        collection="classes", keys=[("courseId", ASCENDING), ("startTime", ASCENDING)]
    ),
    IndexSpec(collection="classes", keys=[("instructorId", ASCENDING)]),
    IndexSpec(collection="classes", keys=[("status", ASCENDING)]),
    # Notice indexes
    IndexSpec(
        collection="notices",
        keys=[("status", ASCENDING), ("publishDate", DESCENDING)],
    ),
    IndexSpec(
        collection="notices", keys=[("category", ASCENDING), ("priority", ASCENDING)]
    ),
    IndexSpec(collection="notices", keys=[("target", ASCENDING)]),
    IndexSpec(collection="notices", keys=[("publishedBy", ASCENDING)]),
]


async def provision_indexes(
    db: AsyncIOMotorDatabase, specs: Optional[List[IndexSpec]] = None
) -> IndexReport:
    """
    Create every index in ``specs`` (defaults to INDEX_SPECS), one at a time.

    Each index is awaited before the next one is requested. A failure is
    logged and recorded in the report, then provisioning moves on: nothing
    is retried and indexes created earlier are left in place.

    Args:
        db: Open database the collections live in
        specs: Indexes to create, in order

    Returns:
        IndexReport with one result per spec, in the order attempted
    """
    specs = INDEX_SPECS if specs is None else specs
    report = IndexReport()

    for spec in specs:
        try:
            name = await db[spec.collection].create_index(spec.keys, **spec.options())
            report.results.append(
                IndexResult(
                    collection=spec.collection,
                    name=name or spec.name,
                    keys=spec.keys,
                    ok=True,
                )
            )
            logger.debug(f"Index ready: {spec.describe()}")
        except PyMongoError as e:
            report.results.append(
                IndexResult(
                    collection=spec.collection,
                    name=spec.name,
                    keys=spec.keys,
                    ok=False,
                    error=str(e),
                    code=getattr(e, "code", None),
                )
            )
            logger.error(f"Error creating index {spec.describe()}: {e}")

    if report.ok:
        logger.info(f"Database indexes created successfully ({len(report.results)})")
    else:
        logger.warning(
            f"Database indexes provisioned with errors: "
            f"{len(report.failed)} of {len(report.results)} failed"
        )

    return report
