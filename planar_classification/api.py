"""
Planar Classification - FastAPI Application

Exposes the session entry points over HTTP:
- Classify the cursor (or a given point) and compare with the ground truth
- Toggle the accelerator (NPU, then GPU) for interactive classification
- Benchmark every available backend on the probe set
- Read or clear the classification history
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .benchmark import BenchmarkResult
from .config import load_config
from .records import ClassificationRecord, Point, label_name
from .report import format_benchmark
from .session import BackendUnavailableError, ClassificationSession, SessionBusyError
from .statistics import AccuracyStatistics

logger = logging.getLogger(__name__)

# Singleton session
_session: Optional[ClassificationSession] = None


def get_session() -> ClassificationSession:
    global _session
    if _session is None:
        config = load_config(os.environ.get("PLANAR_CONFIG"))
        _session = ClassificationSession.from_config(config)
    return _session


class ClassifyRequest(BaseModel):
    x: Optional[float] = None
    y: Optional[float] = None


class ClassifyResponse(BaseModel):
    record: ClassificationRecord
    statistics: AccuracyStatistics


class MoveRequest(BaseModel):
    direction: str


class CursorResponse(BaseModel):
    cursor: Point
    ground_truth: bool


class AcceleratorResponse(BaseModel):
    use_accelerator: bool
    available_accelerators: List[str]


class GroundTruthResponse(BaseModel):
    point: Point
    label: bool
    label_name: str
    rule: str


class HistoryResponse(BaseModel):
    records: List[ClassificationRecord]
    statistics: AccuracyStatistics


class BenchmarkResponse(BaseModel):
    result: BenchmarkResult
    summary: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the session (and load the model) on startup."""
    logger.info("=" * 50)
    logger.info("Planar Classification API Starting...")
    logger.info("=" * 50)

    session = get_session()
    if session.available_backends:
        logger.info(f"✓ Backends ready: {', '.join(session.available_backends)}")
    else:
        logger.error("✗ No inference backend available - classification disabled")

    yield

    logger.info("Shutting down...")
    session.close()


app = FastAPI(
    title="Planar Classification API",
    description="Classify 2D points with a TFLite model and benchmark its backends",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    return {
        "status": "running",
        "api": "Planar Classification API",
        "version": "1.0.0",
        "endpoints": {
            "classify": "/classify",
            "accelerator": "/accelerator",
            "benchmark": "/benchmark",
            "history": "/history",
            "docs": "/docs"
        }
    }


@app.get("/health", tags=["Health"])
async def health_check(session: ClassificationSession = Depends(get_session)):
    available = session.available_backends
    return {
        "status": "healthy" if available else "degraded",
        "backends": {name: backend is not None for name, backend in session.backends.items()},
        "ground_truth_rule": session.classifier.rule.value,
        "use_accelerator": session.use_accelerator,
        "running": session.is_running,
        "history_size": len(session.history)
    }


@app.get("/ground-truth", response_model=GroundTruthResponse, tags=["Classification"])
async def ground_truth(x: float, y: float, session: ClassificationSession = Depends(get_session)):
    point = Point(x=x, y=y)
    label = session.ground_truth(point)
    return GroundTruthResponse(
        point=point, label=label, label_name=label_name(label),
        rule=session.classifier.rule.value
    )


@app.post("/cursor/move", response_model=CursorResponse, tags=["Classification"])
async def move_cursor(request: MoveRequest, session: ClassificationSession = Depends(get_session)):
    try:
        cursor = session.move_cursor(request.direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return CursorResponse(cursor=cursor, ground_truth=session.ground_truth(cursor))


@app.post("/accelerator", response_model=AcceleratorResponse, tags=["Classification"])
async def toggle_accelerator(session: ClassificationSession = Depends(get_session)):
    """Flip the accelerator toggle. It stays off without a GPU or NPU backend."""
    enabled = session.toggle_accelerator()
    return AcceleratorResponse(
        use_accelerator=enabled,
        available_accelerators=session.available_accelerators
    )


@app.post("/classify", response_model=ClassifyResponse, tags=["Classification"])
def classify(request: ClassifyRequest, session: ClassificationSession = Depends(get_session)):
    """
    Classify a point. Without coordinates the current cursor is used.
    """
    point = None
    if request.x is not None or request.y is not None:
        if request.x is None or request.y is None:
            raise HTTPException(status_code=400, detail="Both 'x' and 'y' are required")
        point = Point(x=request.x, y=request.y)

    try:
        record = session.classify(point)
    except BackendUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Classification failed: {e}")

    return ClassifyResponse(record=record, statistics=session.statistics())


@app.post("/benchmark", response_model=BenchmarkResponse, tags=["Benchmark"])
def run_benchmark(session: ClassificationSession = Depends(get_session)):
    try:
        result = session.run_benchmark()
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return BenchmarkResponse(result=result, summary=format_benchmark(result))


@app.get("/benchmark", response_model=BenchmarkResponse, tags=["Benchmark"])
async def last_benchmark(session: ClassificationSession = Depends(get_session)):
    result = session.last_benchmark
    if result is None:
        raise HTTPException(status_code=404, detail="No benchmark has been run yet")
    return BenchmarkResponse(result=result, summary=format_benchmark(result))


@app.get("/history", response_model=HistoryResponse, tags=["History"])
async def history(backend: Optional[str] = None, session: ClassificationSession = Depends(get_session)):
    records = [r for r in session.history if backend is None or r.backend_name == backend]
    return HistoryResponse(records=records, statistics=session.statistics(backend))


@app.delete("/history", tags=["History"])
def clear_history(session: ClassificationSession = Depends(get_session)):
    try:
        session.clear_history()
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "history_size": 0}


def main():
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    config = load_config(os.environ.get("PLANAR_CONFIG"))
    uvicorn.run(app, host=config['server']['host'], port=config['server']['port'])


if __name__ == "__main__":
    main()
