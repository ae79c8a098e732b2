import logging
from threading import Lock

from dotenv import load_dotenv
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()

from carebook.core import config  # noqa: E402

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False):
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are opened per repository call and may land on any thread.
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(database_url, echo=echo, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL, echo=config.SQL_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False

ACTIVE_STATUS_SQL = "('pending', 'confirmed')"


def ensure_availability_schema(bind=None) -> None:
    global _availability_schema_checked

    # The checked flag only tracks the module engine.
    use_default = bind is None
    if use_default and _availability_schema_checked:
        return

    with _schema_lock:
        if use_default and _availability_schema_checked:
            return

        bind = bind or engine
        inspector = inspect(bind)

        if 'availability' in inspector.get_table_names():
            existing_columns = {column['name'] for column in inspector.get_columns('availability')}
            migration_steps = [
                ('is_available', 'ALTER TABLE availability ADD COLUMN is_available BOOLEAN DEFAULT TRUE'),
                ('breaks', 'ALTER TABLE availability ADD COLUMN breaks JSON'),
            ]

            with bind.begin() as connection:
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text(
                        'CREATE UNIQUE INDEX IF NOT EXISTS uq_availability_provider_weekday '
                        'ON availability(provider_id, weekday)'
                    )
                )

        if use_default:
            _availability_schema_checked = True


def _release_duplicate_active_slots(connection) -> None:
    duplicates = connection.execute(
        text(
            'SELECT provider_id, date, time, COUNT(*) FROM appointments '
            'WHERE active_slot IS NOT NULL '
            'GROUP BY provider_id, date, time HAVING COUNT(*) > 1'
        )
    ).all()
    if not duplicates:
        return

    for provider_id, slot_date, slot_time, count in duplicates:
        logger.warning(
            'Provider %s has %s active appointments on %s %s; keeping the earliest, the rest need manual review',
            provider_id, count, slot_date, slot_time,
        )

    connection.execute(
        text(
            'UPDATE appointments SET active_slot = NULL '
            'WHERE active_slot IS NOT NULL AND id <> ('
            'SELECT MIN(earliest.id) FROM appointments AS earliest '
            'WHERE earliest.provider_id = appointments.provider_id '
            'AND earliest.date = appointments.date '
            'AND earliest.time = appointments.time '
            'AND earliest.active_slot IS NOT NULL)'
        )
    )


def ensure_appointment_schema(bind=None) -> None:
    global _appointment_schema_checked

    use_default = bind is None
    if use_default and _appointment_schema_checked:
        return

    with _schema_lock:
        if use_default and _appointment_schema_checked:
            return

        bind = bind or engine
        inspector = inspect(bind)

        if 'appointments' in inspector.get_table_names():
            existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
            existing_indexes = {index['name'] for index in inspector.get_indexes('appointments')}
            migration_steps = [
                ('appointment_type', "ALTER TABLE appointments ADD COLUMN appointment_type VARCHAR(20) DEFAULT 'in-person'"),
                ('notes', 'ALTER TABLE appointments ADD COLUMN notes TEXT'),
                ('follow_up_of', 'ALTER TABLE appointments ADD COLUMN follow_up_of INTEGER'),
                ('active_slot', 'ALTER TABLE appointments ADD COLUMN active_slot INTEGER'),
            ]

            with bind.begin() as connection:
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                if 'active_slot' not in existing_columns:
                    connection.execute(
                        text(f'UPDATE appointments SET active_slot = 1 WHERE status IN {ACTIVE_STATUS_SQL}')
                    )
                if 'uq_appointments_active_slot' not in existing_indexes:
                    _release_duplicate_active_slots(connection)
                    connection.execute(
                        text(
                            'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot '
                            'ON appointments(provider_id, date, time, active_slot)'
                        )
                    )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_date ON appointments(patient_id, date)')
                )

        if use_default:
            _appointment_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
