import os
from datetime import datetime
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from carebook.auth.jwt_handler import issue_token  # noqa: E402
from carebook.database import Base, build_engine, get_db  # noqa: E402
from carebook.main import app  # noqa: E402
from carebook.models.appointment import Appointment  # noqa: E402
from carebook.models.availability import Availability  # noqa: E402
from carebook.models.user import User  # noqa: E402
from carebook.routes.common import get_scheduling_service  # noqa: E402
from carebook.scheduling.repositories import SqlAppointmentRepository, SqlAvailabilityRepository  # noqa: E402
from carebook.scheduling.service import SchedulingService  # noqa: E402

NOW = datetime(2026, 1, 5, 8, 0, tzinfo=ZoneInfo('UTC'))

USERS = [
    ('admin@carebook.test', 'admin', True),
    ('dr.lee@carebook.test', 'provider', True),
    ('dr.kim@carebook.test', 'provider', True),
    ('alice@carebook.test', 'patient', True),
    ('bob@carebook.test', 'patient', True),
    ('former@carebook.test', 'patient', False),
    ('auditor@carebook.test', 'auditor', True),
]


def bearer(email: str) -> dict[str, str]:
    return {'Authorization': f'Bearer {issue_token(email)}'}


@pytest.fixture
def auth_header():
    return bearer


@pytest.fixture
def carebook_api(tmp_path):
    engine = build_engine(f'sqlite:///{tmp_path / "api.db"}')
    tables = [User.__table__, Availability.__table__, Appointment.__table__]
    Base.metadata.create_all(bind=engine, tables=tables)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

    ids = {}
    db = testing_session_local()
    try:
        for email, role, is_active in USERS:
            user = User(email=email, role=role, is_active=is_active)
            db.add(user)
            db.flush()
            ids[email.split('@')[0]] = user.id
        db.commit()
    finally:
        db.close()

    service = SchedulingService(
        SqlAppointmentRepository(testing_session_local),
        SqlAvailabilityRepository(testing_session_local),
        duration_minutes=60,
        timezone='UTC',
        cancellation_cutoff_hours=None,
        clock=lambda: NOW,
    )

    def override_get_db():
        session = testing_session_local()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scheduling_service] = lambda: service
    try:
        yield SimpleNamespace(client=TestClient(app), ids=ids, service=service)
    finally:
        app.dependency_overrides.clear()
        engine.dispose()
