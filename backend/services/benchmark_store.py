"""
Benchmark Store - persistence for benchmarks and comparison reports.
Benchmarks are replaced as a whole on update; deleting one also deletes every
report that references it.
"""

import logging
import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, desc, or_, select

from benchmark_models import (
    Benchmark,
    BenchmarkConfig,
    BenchmarkFilters,
    ComparisonReport,
    PerformanceMetrics,
    ReportInput,
)
from database import database, BenchmarkRecord, ReportRecord
from services.errors import InvalidReport
from services.search import filter_benchmarks

logger = logging.getLogger(__name__)

_ID_CHARACTERS = string.ascii_uppercase + string.digits


def generate_unique_id(prefix: str) -> str:
    """Human-readable id: PREFIX-YYYYMMDDHHMMSS-XXXXXX ("BM" benchmarks, "RP" reports)."""
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    suffix = "".join(secrets.choice(_ID_CHARACTERS) for _ in range(6))
    return f"{prefix}-{timestamp}-{suffix}"


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite stores naive timestamps; aware ones are converted to UTC first."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _to_benchmark(record: BenchmarkRecord) -> Benchmark:
    return Benchmark(
        id=record.id,
        unique_id=record.unique_id,
        config=BenchmarkConfig.model_validate(record.config),
        metrics=[PerformanceMetrics.model_validate(m) for m in record.metrics],
        created_at=record.created_at,
    )


def _to_report(record: ReportRecord) -> ComparisonReport:
    return ComparisonReport(
        id=record.id,
        unique_id=record.unique_id,
        benchmark_id1=record.benchmark_id1,
        benchmark_id2=record.benchmark_id2,
        model_name1=record.model_name1,
        model_name2=record.model_name2,
        summary=record.summary,
        created_at=record.created_at,
    )


class BenchmarkStore:
    """Benchmark and report persistence on top of the shared async database."""

    def __init__(self, db=None):
        self.db = db or database

    async def list_benchmarks(self, filters: Optional[BenchmarkFilters] = None) -> List[Benchmark]:
        """All benchmarks, newest first, optionally filtered."""
        async with self.db.get_session() as session:
            result = await session.execute(
                select(BenchmarkRecord).order_by(desc(BenchmarkRecord.created_at))
            )
            benchmarks = [_to_benchmark(record) for record in result.scalars().all()]

        if filters is None or filters.is_empty():
            return benchmarks
        filtered = filter_benchmarks(benchmarks, filters)
        logger.info(f"Filtered benchmarks: {len(filtered)} of {len(benchmarks)} match")
        return filtered

    async def get_benchmark(self, benchmark_id: str) -> Optional[Benchmark]:
        async with self.db.get_session() as session:
            record = await session.get(BenchmarkRecord, benchmark_id)
            return _to_benchmark(record) if record else None

    async def save_benchmark(
        self,
        config: BenchmarkConfig,
        metrics: Sequence[PerformanceMetrics],
        benchmark_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Benchmark:
        """Insert a benchmark, or replace config and metrics of an existing id."""
        config_data = config.model_dump(by_alias=True)
        metrics_data = [m.model_dump(by_alias=True) for m in metrics]

        async with self.db.get_session() as session:
            record = None
            if benchmark_id:
                record = await session.get(BenchmarkRecord, benchmark_id)

            if record is None:
                record = BenchmarkRecord(
                    id=benchmark_id or str(uuid.uuid4()),
                    unique_id=generate_unique_id("BM"),
                    config=config_data,
                    metrics=metrics_data,
                    created_at=naive_utc(created_at) or datetime.utcnow(),
                )
                session.add(record)
                logger.info(f"📝 Created benchmark {record.unique_id} ({config.model_name}, {len(metrics_data)} rows)")
            else:
                record.config = config_data
                record.metrics = metrics_data
                logger.info(f"📝 Replaced benchmark {record.unique_id} ({config.model_name}, {len(metrics_data)} rows)")

            await session.commit()
            return _to_benchmark(record)

    async def delete_benchmark(self, benchmark_id: str) -> bool:
        """Delete a benchmark and every report referencing it, in one transaction."""
        async with self.db.get_session() as session:
            record = await session.get(BenchmarkRecord, benchmark_id)
            if record is None:
                return False

            result = await session.execute(
                delete(ReportRecord).where(
                    or_(
                        ReportRecord.benchmark_id1 == benchmark_id,
                        ReportRecord.benchmark_id2 == benchmark_id,
                    )
                )
            )
            await session.delete(record)
            await session.commit()

            logger.info(f"🗑️ Deleted benchmark {record.unique_id} and {result.rowcount} report(s)")
            return True

    async def list_reports(self) -> List[ComparisonReport]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(ReportRecord).order_by(desc(ReportRecord.created_at))
            )
            return [_to_report(record) for record in result.scalars().all()]

    async def get_report(self, report_id: str) -> Optional[ComparisonReport]:
        async with self.db.get_session() as session:
            record = await session.get(ReportRecord, report_id)
            return _to_report(record) if record else None

    async def save_report(self, report: ReportInput) -> ComparisonReport:
        """Insert a report, or replace the summary of an existing id.

        Both referenced benchmarks must exist; missing model names are taken
        from their configs.
        """
        if report.benchmark_id1 == report.benchmark_id2:
            raise InvalidReport("a report must compare two different benchmarks")

        async with self.db.get_session() as session:
            first = await session.get(BenchmarkRecord, report.benchmark_id1)
            second = await session.get(BenchmarkRecord, report.benchmark_id2)
            missing = [
                benchmark_id
                for benchmark_id, record in ((report.benchmark_id1, first), (report.benchmark_id2, second))
                if record is None
            ]
            if missing:
                raise InvalidReport(f"benchmark(s) not found: {', '.join(missing)}")

            record = None
            if report.id:
                record = await session.get(ReportRecord, report.id)

            if record is None:
                record = ReportRecord(
                    id=report.id or str(uuid.uuid4()),
                    unique_id=generate_unique_id("RP"),
                    benchmark_id1=report.benchmark_id1,
                    benchmark_id2=report.benchmark_id2,
                    model_name1=report.model_name1 or first.config.get("modelName", ""),
                    model_name2=report.model_name2 or second.config.get("modelName", ""),
                    summary=report.summary,
                    created_at=naive_utc(report.created_at) or datetime.utcnow(),
                )
                session.add(record)
                logger.info(f"📝 Created report {record.unique_id}")
            else:
                record.summary = report.summary
                if report.created_at:
                    record.created_at = naive_utc(report.created_at)
                logger.info(f"📝 Updated report {record.unique_id}")

            await session.commit()
            return _to_report(record)

    async def delete_report(self, report_id: str) -> bool:
        async with self.db.get_session() as session:
            record = await session.get(ReportRecord, report_id)
            if record is None:
                return False
            await session.delete(record)
            await session.commit()
            logger.info(f"🗑️ Deleted report {record.unique_id}")
            return True
