from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from agenda.core import config


engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_time_block_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_tenant_start '
                    'ON appointments(tenant_id, start_time)'
                )
            )
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_appointments_professional_range '
                    'ON appointments(professional_id, start_time, end_time)'
                )
            )

        _appointment_schema_checked = True


def ensure_time_block_schema() -> None:
    global _time_block_schema_checked

    if _time_block_schema_checked:
        return

    with _schema_lock:
        if _time_block_schema_checked:
            return

        inspector = inspect(engine)

        if 'time_blocks' not in inspector.get_table_names():
            _time_block_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_time_blocks_tenant_range '
                    'ON time_blocks(tenant_id, start_time, end_time)'
                )
            )

        _time_block_schema_checked = True
