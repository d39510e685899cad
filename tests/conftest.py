"""
Shared pytest fixtures for the Sales Daily Report test suite.

Provides:
    - app: Flask application (session-scoped, in-memory SQLite, tmp upload folder)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - org chart: director, manager, other_manager, staff, other_staff
    - customer / inactive_customer
    - workflow: ReportWorkflow bound to the test session
    - make_report / auth_headers / actor_of helpers
"""

from datetime import date, time

import pytest

from app import create_app
from app.core.actor import Actor
from app.models import db as _db
from app.models.daily_report import DailyReport, ReportStatus, VisitRecord
from app.models.organization import Customer, Position, PositionLevel, Salesperson
from app.services.attachment_storage import AttachmentStorage
from app.services.jwt_service import generate_access_token
from app.services.report_store import ReportStore
from app.services.report_workflow import ReportWorkflow

REPORT_DATE = date(2026, 10, 19)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create the Flask application once per test session."""
    application = create_app("testing")
    application.config["UPLOAD_FOLDER"] = str(tmp_path_factory.mktemp("uploads"))
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Org chart ────────────────────────────────────────────────────────────


def _make_person(name, email, level, manager=None, director=None, is_active=True):
    p = Salesperson(
        name=name,
        email=email,
        position_id=level,
        manager_id=manager.id if manager else None,
        director_id=director.id if director else None,
        is_active=is_active,
    )
    _db.session.add(p)
    _db.session.commit()
    return p


@pytest.fixture()
def positions(session):
    for level, name in ((PositionLevel.STAFF, "担当"), (PositionLevel.MANAGER, "課長"),
                        (PositionLevel.DIRECTOR, "部長")):
        _db.session.add(Position(id=level, name=name, level=level))
    _db.session.commit()


@pytest.fixture()
def director(positions):
    return _make_person("Director", "director@example.com", PositionLevel.DIRECTOR)


@pytest.fixture()
def other_director(positions):
    return _make_person("Other Director", "director2@example.com", PositionLevel.DIRECTOR)


@pytest.fixture()
def manager(director):
    return _make_person("Manager", "manager@example.com", PositionLevel.MANAGER, director=director)


@pytest.fixture()
def other_manager(director):
    return _make_person("Other Manager", "manager2@example.com", PositionLevel.MANAGER, director=director)


@pytest.fixture()
def staff(manager, director):
    return _make_person("Yamada", "yamada@example.com", PositionLevel.STAFF,
                        manager=manager, director=director)


@pytest.fixture()
def other_staff(other_manager, director):
    return _make_person("Sato", "sato@example.com", PositionLevel.STAFF,
                        manager=other_manager, director=director)


@pytest.fixture()
def customer(session):
    c = Customer(name="ABC Corp")
    _db.session.add(c)
    _db.session.commit()
    return c


@pytest.fixture()
def inactive_customer(session):
    c = Customer(name="Closed Corp", is_active=False)
    _db.session.add(c)
    _db.session.commit()
    return c


# ── Engine wiring ────────────────────────────────────────────────────────


@pytest.fixture()
def workflow(app, session):
    return ReportWorkflow(
        ReportStore(session),
        storage=AttachmentStorage(app.config["UPLOAD_FOLDER"]),
        max_attachment_size=app.config["MAX_ATTACHMENT_SIZE"],
    )


def _actor_of(person) -> Actor:
    return Actor(id=person.id, position_level=person.position_level)


def _auth_headers(person) -> dict:
    token = generate_access_token(person.id, person.position_level)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def actor_of():
    """Salesperson row → engine Actor."""
    return _actor_of


@pytest.fixture()
def auth_headers(app):
    """Salesperson row → Authorization header dict."""
    return _auth_headers


@pytest.fixture()
def make_report(customer):
    """Factory: insert a report directly with a given status and visit count."""

    def _make(owner, status=ReportStatus.DRAFT, visits=1, report_date=REPORT_DATE, **fields):
        report = DailyReport(
            salesperson_id=owner.id,
            report_date=report_date,
            status=status,
            problem=fields.pop("problem", "Slow pipeline"),
            plan=fields.pop("plan", "Call back ABC"),
            **fields,
        )
        for i in range(visits):
            report.visit_records.append(VisitRecord(
                customer_id=customer.id,
                visit_time=time(9 + i, 0),
                content=f"Visit {i + 1}",
            ))
        _db.session.add(report)
        _db.session.commit()
        return report

    return _make
