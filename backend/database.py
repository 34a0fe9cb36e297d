from sqlalchemy import Column, String, JSON, DateTime, Text, Index
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from datetime import datetime
import os

Base = declarative_base()

class BenchmarkRecord(Base):
    __tablename__ = "benchmarks"

    id = Column(String, primary_key=True)  # uuid4
    unique_id = Column(String, nullable=False)  # e.g. "BM-20250101120000-AB12CD"
    config = Column(JSON, nullable=False)  # BenchmarkConfig, camelCase keys
    metrics = Column(JSON, nullable=False)  # list of PerformanceMetrics
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_benchmarks_created_at', 'created_at'),
        Index('idx_benchmarks_unique_id', 'unique_id'),
    )

class ReportRecord(Base):
    __tablename__ = "reports"

    id = Column(String, primary_key=True)
    unique_id = Column(String, nullable=False)  # e.g. "RP-20250101120000-AB12CD"
    # Plain ids, not foreign keys: deleting a benchmark deletes its reports explicitly
    benchmark_id1 = Column(String, nullable=False)
    benchmark_id2 = Column(String, nullable=False)
    model_name1 = Column(String, nullable=False)
    model_name2 = Column(String, nullable=False)
    summary = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_reports_benchmark1', 'benchmark_id1'),
        Index('idx_reports_benchmark2', 'benchmark_id2'),
    )

class Database:
    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = os.environ.get('DATABASE_URL')
        if database_url is None:
            # Default to SQLite in the data directory
            data_dir = os.environ.get('DATA_DIR', './data')
            database_url = f"sqlite+aiosqlite:///{data_dir}/benchmarks.db"

        self.database_url = database_url
        self.engine = None
        self.SessionLocal = None

    async def initialize(self):
        """Initialize database connection and create tables"""
        if self.database_url.startswith("sqlite") and ":memory:" not in self.database_url:
            db_path = self.database_url.split(":///", 1)[-1]
            directory = os.path.dirname(db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

        self.engine = create_async_engine(
            self.database_url,
            echo=False,  # Set to True for SQL debugging
            future=True
        )
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Create tables
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def get_session(self):
        """Get database session context manager"""
        if self.SessionLocal is None:
            raise RuntimeError("Database is not initialized")
        return AsyncSessionContext(self.SessionLocal)

    async def close(self):
        """Close database connection"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.SessionLocal = None

class AsyncSessionContext:
    def __init__(self, session_factory):
        self.session_factory = session_factory
        self.session = None

    async def __aenter__(self):
        self.session = self.session_factory()
        return self.session

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()

# Global database instance
database = Database()
