"""
Shared fixtures: small PDFs built with PyMuPDF, deterministic font metrics,
and a TestClient wired to an in-memory database.
"""

from typing import List, Sequence, Tuple

import fitz  # PyMuPDF
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cv_optimizer.db.database import Base, get_db
from cv_optimizer.main import app

Line = Tuple[float, float, str]  # x, baseline y (top-left origin), text


def make_pdf(pages: Sequence[Sequence[Line]], width: float = 612, height: float = 792) -> bytes:
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page(width=width, height=height)
        for x, y, text in lines:
            page.insert_text((x, y), text, fontsize=11, fontname="helv")
    data = doc.tobytes()
    doc.close()
    return data


RESUME_LINES: List[Line] = [
    (72, 72, "Jane Doe"),
    (72, 100, "Senior Backend Engineer with 8 years of experience"),
    (72, 128, "Managed a team of 5 engineers building payment APIs."),
    (72, 156, "Skills: Python, Go, PostgreSQL, Kubernetes, Terraform"),
    (72, 184, "Education: BSc Computer Science, University of Leeds"),
]


class CharWidthMetrics:
    """Every character is factor * size wide."""

    def __init__(self, factor: float = 0.5):
        self.factor = factor

    def width_of(self, text: str, size: float) -> float:
        return len(text) * size * self.factor


class RecordingSurface:
    """PageSurface that records draw calls instead of painting."""

    def __init__(self, width: float = 612, height: float = 792):
        self.width = width
        self.height = height
        self.rects: List[Tuple[float, float, float, float]] = []
        self.texts: List[Tuple[str, float, float, float]] = []

    def draw_rectangle(self, x, y, width, height, color):
        self.rects.append((x, y, width, height))

    def draw_text(self, text, x, y, size, color):
        self.texts.append((text, x, y, size))


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def resume_pdf() -> bytes:
    return make_pdf([RESUME_LINES])


@pytest.fixture
def three_page_pdf() -> bytes:
    return make_pdf([
        [(72, 100, "Page one summary line")],
        [(72, 100, "Page two experience line")],
        [(72, 100, "Page three education line")],
    ])


@pytest.fixture
def metrics() -> CharWidthMetrics:
    return CharWidthMetrics()


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


# ── API fixtures ──────────────────────────────────────────────────────────────

@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(db_session_factory):
    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # no lifespan: tables come from the fixture engine, the browser pool is never launched
    yield TestClient(app)
    app.dependency_overrides.clear()

