import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core.config import settings, validate_runtime_config
from backend.core.errors import register_exception_handlers
from backend.database import init_db
from backend.routes import auth_routes, todo_routes

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_runtime_config()
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')
    logger.info('Todo API started (%s)', settings.app_env)
    yield


app = FastAPI(title='Todo API', lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

register_exception_handlers(app)


@app.get('/')
def root():
    return {'message': 'Welcome to Todo App Backend!', 'status': 'Server is running'}


@app.get('/api/test')
def api_test():
    return {'message': 'This is a test route', 'timestamp': datetime.now(timezone.utc).isoformat()}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(todo_routes.router, prefix='/api/todos')
