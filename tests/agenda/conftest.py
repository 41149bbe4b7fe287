import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from agenda.database import Base  # noqa: E402
from agenda.models.appointment import Appointment  # noqa: E402
from agenda.models.business_hours import BusinessHours  # noqa: E402
from agenda.models.customer import Customer  # noqa: E402
from agenda.models.professional import Professional  # noqa: E402
from agenda.models.service import Service  # noqa: E402
from agenda.models.tenant import Tenant  # noqa: E402
from agenda.models.time_block import TimeBlock  # noqa: E402

TABLES = [
    Tenant.__table__,
    Professional.__table__,
    Service.__table__,
    BusinessHours.__table__,
    TimeBlock.__table__,
    Customer.__table__,
    Appointment.__table__,
]


@pytest.fixture
def agenda_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('agenda.routes.availability_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('agenda.routes.appointment_routes.ensure_database_ready', lambda: None)


@pytest.fixture
def salon(agenda_db):
    tenant = Tenant(name='Studio Bela', slug='studio-bela', theme_variant='salon')
    agenda_db.add(tenant)
    agenda_db.flush()

    haircut = Service(tenant_id=tenant.id, name='Haircut', duration_minutes=30, price_cents=5000, active=True)
    coloring = Service(tenant_id=tenant.id, name='Coloring', duration_minutes=90, price_cents=18000, active=True)
    ana = Professional(tenant_id=tenant.id, name='Ana', active=True)
    bruno = Professional(tenant_id=tenant.id, name='Bruno', active=True)
    agenda_db.add_all([haircut, coloring, ana, bruno])
    agenda_db.commit()

    return {
        'tenant': tenant,
        'haircut': haircut,
        'coloring': coloring,
        'ana': ana,
        'bruno': bruno,
    }
