import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from carebook.core import config
from carebook.database import Base, engine, ensure_availability_schema, ensure_appointment_schema
from carebook.models import appointment, availability, user  # noqa: F401
from carebook.routes import appointment_routes, auth_routes, availability_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='CareBook Scheduling')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
    logger.info(
        'Scheduling ready: %s-minute slots, time zone %s',
        config.SLOT_DURATION_MINUTES,
        config.SCHEDULING_TIMEZONE,
    )


@app.get('/')
def root():
    return {'status': 'CareBook Scheduling API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/providers')
app.include_router(appointment_routes.router, prefix='/appointments')
