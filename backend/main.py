"""
FastAPI application for the LLM inference benchmark board.
Version 1.0.0 - benchmarks, CSV import, comparison reports
"""

from fastapi import FastAPI, HTTPException, Request, File, UploadFile, Form, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse, FileResponse, RedirectResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Optional
import json
import time
import logging
import os

from api_models import (
    HealthResponse,
    BenchmarkResponse,
    BenchmarkListResponse,
    ReportResponse,
    ReportListResponse,
    ColumnMappingInfo,
    CsvPreviewData,
    CsvPreviewResponse,
    ComparisonResponse,
)
from benchmark_models import BenchmarkFilters, ReportInput, parse_iso_date
from database import database
from services.benchmark_store import BenchmarkStore
from services.benchmark_validator import BenchmarkValidator
from services.comparison import compare_benchmarks
from services.errors import BenchmarkInputError, InvalidCsvFormat
from services.metrics_extractor import MetricsExtractor, parse_benchmark_csv, preview_benchmark_csv

API_VERSION = "1.0.0"

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database on startup and release it on shutdown."""
    try:
        await database.initialize()
        logger.info("✅ Database initialized successfully")
    except Exception as e:
        logger.error(f"❌ Failed to initialize database: {e}")
        raise
    yield
    try:
        await database.close()
        logger.info("✅ Database connection closed")
    except Exception as e:
        logger.error(f"❌ Error closing database: {e}")


# Initialize FastAPI app
app = FastAPI(
    title="LLM Bench Board API",
    description="Record, browse and compare LLM inference performance benchmarks",
    version=API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services
validator = BenchmarkValidator()
extractor = MetricsExtractor(validator)
store = BenchmarkStore()


# Exception handlers
@app.exception_handler(BenchmarkInputError)
async def benchmark_input_exception_handler(request: Request, exc: BenchmarkInputError):
    """Rejected benchmark input: the error text goes to the client unchanged."""
    logger.warning(f"Rejected input on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": exc.__class__.__name__,
            "message": str(exc),
            "timestamp": int(time.time())
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Validation error",
            "message": str(exc),
            "timestamp": int(time.time())
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": "HTTP error",
            "message": exc.detail,
            "timestamp": int(time.time())
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "message": "An unexpected error occurred",
            "timestamp": int(time.time())
        }
    )


async def read_csv_upload(file: Optional[UploadFile]) -> str:
    """Read an uploaded CSV file as UTF-8 text."""
    if file is None:
        raise HTTPException(status_code=400, detail="No CSV file uploaded")

    filename = getattr(file, 'filename', None) or "unknown"
    content = await file.read()
    if not content:
        raise InvalidCsvFormat(f"CSV file {filename} is empty")
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidCsvFormat(f"CSV file {filename} is not UTF-8 encoded")


def parse_created_at(value) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail="createdAt must be an ISO-8601 string")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid createdAt: {value}")


# API Endpoints
@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        timestamp=int(time.time())
    )


@app.get("/api/v1/benchmarks", response_model=BenchmarkListResponse)
async def list_benchmarks(
    q: Optional[str] = None,
    model_name: Optional[str] = Query(None, alias="modelName"),
    server_name: Optional[str] = Query(None, alias="serverName"),
    sharding_config: Optional[str] = Query(None, alias="shardingConfig"),
    chip_name: Optional[str] = Query(None, alias="chipName"),
    framework: Optional[str] = None,
    framework_version: Optional[str] = Query(None, alias="frameworkVersion"),
    submitter: Optional[str] = None,
    operator_acceleration: Optional[str] = Query(None, alias="operatorAcceleration"),
    notes: Optional[str] = None,
    framework_params: Optional[str] = Query(None, alias="frameworkParams"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    """List benchmarks, newest first, with free-text and advanced filters."""
    filters = BenchmarkFilters(
        q=q,
        model_name=model_name,
        server_name=server_name,
        sharding_config=sharding_config,
        chip_name=chip_name,
        framework=framework,
        framework_version=framework_version,
        submitter=submitter,
        operator_acceleration=operator_acceleration,
        notes=notes,
        framework_params=framework_params,
        start_date=start_date,
        end_date=end_date,
    )
    try:
        benchmarks = await store.list_benchmarks(filters)
    except Exception as e:
        logger.error(f"Error listing benchmarks: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="Failed to retrieve benchmarks"
        )
    return BenchmarkListResponse(
        data=benchmarks,
        total=len(benchmarks),
        timestamp=int(time.time())
    )


@app.get("/api/v1/benchmarks/{benchmark_id}", response_model=BenchmarkResponse)
async def get_benchmark(benchmark_id: str):
    benchmark = await store.get_benchmark(benchmark_id)
    if not benchmark:
        raise HTTPException(
            status_code=404,
            detail="Benchmark not found"
        )
    return BenchmarkResponse(data=benchmark, timestamp=int(time.time()))


@app.post("/api/v1/benchmarks", response_model=BenchmarkResponse, status_code=201)
async def save_benchmark(request: Request):
    """Manual entry: create a benchmark, or replace one when the id already exists."""
    try:
        payload = await request.json()
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid JSON body: {str(e)}"
        )
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be an object")

    benchmark_id = payload.get("id")
    if benchmark_id is not None and not isinstance(benchmark_id, str):
        raise HTTPException(status_code=400, detail="id must be a string")

    config = validator.validate_config(payload.get("config"))
    metrics = validator.validate_metrics(payload.get("metrics"))
    created_at = parse_created_at(payload.get("createdAt"))

    benchmark = await store.save_benchmark(
        config,
        metrics,
        benchmark_id=benchmark_id or None,
        created_at=created_at,
    )
    return BenchmarkResponse(data=benchmark, timestamp=int(time.time()))


@app.post("/api/v1/benchmarks/upload", response_model=BenchmarkResponse, status_code=201)
async def upload_benchmark_csv(
    file: Optional[UploadFile] = File(None),
    config: Optional[str] = Form(None),
):
    """Import one benchmark from a CSV file plus a JSON config. All rows or nothing."""
    if file is None:
        raise HTTPException(status_code=400, detail="No CSV file uploaded")
    if not config:
        raise HTTPException(status_code=400, detail="No config provided")

    try:
        config_data = json.loads(config)
    except json.JSONDecodeError as e:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid config: not valid JSON ({str(e)})"
        )

    validated_config = validator.validate_config(config_data)
    csv_text = await read_csv_upload(file)
    logger.info(f"Processing benchmark CSV: {file.filename}")
    metrics = parse_benchmark_csv(csv_text, extractor)

    benchmark = await store.save_benchmark(validated_config, metrics)
    logger.info(f"Successfully imported {len(metrics)} metric row(s) from {file.filename}")
    return BenchmarkResponse(data=benchmark, timestamp=int(time.time()))


@app.post("/api/v1/benchmarks/preview", response_model=CsvPreviewResponse)
async def preview_benchmark_csv_upload(file: Optional[UploadFile] = File(None)):
    """Parse a CSV file the same way the import does, without storing anything."""
    csv_text = await read_csv_upload(file)
    mapping, metrics = preview_benchmark_csv(csv_text, extractor)
    return CsvPreviewResponse(
        data=CsvPreviewData(
            mapping=[
                ColumnMappingInfo(
                    field=field.value,
                    source_column=column.source_column,
                    conversion_factor=column.conversion_factor,
                )
                for field, column in mapping.items()
            ],
            metrics=metrics,
        ),
        timestamp=int(time.time())
    )


@app.delete("/api/v1/benchmarks/{benchmark_id}", status_code=204)
async def delete_benchmark(benchmark_id: str):
    """Delete a benchmark together with the reports that reference it."""
    deleted = await store.delete_benchmark(benchmark_id)
    if not deleted:
        raise HTTPException(
            status_code=404,
            detail="Benchmark not found"
        )
    return Response(status_code=204)


@app.get("/api/v1/compare", response_model=ComparisonResponse)
async def compare(id1: str, id2: str):
    """Side-by-side comparison of two benchmarks."""
    first = await store.get_benchmark(id1)
    second = await store.get_benchmark(id2)
    missing = [bid for bid, b in ((id1, first), (id2, second)) if b is None]
    if missing:
        raise HTTPException(
            status_code=404,
            detail=f"Benchmark(s) not found: {', '.join(missing)}"
        )
    return ComparisonResponse(
        data=compare_benchmarks(first, second),
        timestamp=int(time.time())
    )


@app.get("/api/v1/reports", response_model=ReportListResponse)
async def list_reports():
    try:
        reports = await store.list_reports()
    except Exception as e:
        logger.error(f"Error listing reports: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="Failed to retrieve reports"
        )
    return ReportListResponse(data=reports, timestamp=int(time.time()))


@app.post("/api/v1/reports", response_model=ReportResponse, status_code=201)
async def save_report(report: ReportInput):
    """Create a comparison report, or update the summary of an existing one."""
    saved = await store.save_report(report)
    return ReportResponse(data=saved, timestamp=int(time.time()))


@app.delete("/api/v1/reports/{report_id}", status_code=204)
async def delete_report(report_id: str):
    deleted = await store.delete_report(report_id)
    if not deleted:
        raise HTTPException(
            status_code=404,
            detail="Report not found"
        )
    return Response(status_code=204)


# Old unversioned routes
@app.get("/api/benchmarks")
async def legacy_list_benchmarks():
    return RedirectResponse(url="/api/v1/benchmarks", status_code=301)


@app.post("/api/benchmarks")
async def legacy_save_benchmark():
    return RedirectResponse(url="/api/v1/benchmarks", status_code=307)


# Static file serving and SPA routing
# Serve the built frontend if the directory exists
static_dir = Path(os.environ.get("STATIC_DIR", "static"))
if static_dir.exists():
    app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    logger.info(f"✅ Static files mounted from {static_dir}/ directory")
else:
    logger.warning("⚠️  Static files directory not found - frontend not available")


# Catch-all route for SPA routing
@app.get("/{full_path:path}")
async def spa_catchall(full_path: str):
    """Catch-all route to serve the frontend index.html for SPA routing."""
    # If it's an API route that wasn't matched, return 404
    if full_path.startswith("api/"):
        raise HTTPException(
            status_code=404,
            detail="API endpoint not found"
        )

    if static_dir.exists():
        index_path = static_dir / "index.html"
        if index_path.exists():
            return FileResponse(str(index_path))

    raise HTTPException(
        status_code=404,
        detail="Frontend not available"
    )


# Development server
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        log_level="info"
    )
