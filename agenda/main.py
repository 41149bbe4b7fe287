import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from agenda.core import config
from agenda.database import Base, engine, ensure_appointment_schema, ensure_time_block_schema
from agenda.models import appointment, business_hours, customer, professional, service, tenant, time_block  # noqa: F401
from agenda.routes import appointment_routes, availability_routes, tenant_routes

config.validate_runtime_config()

app = FastAPI(title='Agenda')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_time_block_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Agenda API Running'}


app.include_router(tenant_routes.router, prefix='/tenants')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
