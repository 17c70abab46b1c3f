from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from hackscore.api.fastapi import FastAPIApp
from hackscore.core.config import settings
from hackscore.core.supabase_client import create_supabase_client
from hackscore.services.factory import ServiceFactory
from hackscore.utils.exception import add_exception_handlers
from hackscore.utils.logging import logger

load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up {settings.app_name} ({settings.env})")
    try:
        supabase = await create_supabase_client()
    except Exception as e:
        logger.error(f"Failed to connect to Supabase: {e}")
        raise
    app.state.supabase = supabase
    app.state.services = ServiceFactory.create(supabase, settings)

    yield

    logger.info(f"Shutting down {settings.app_name}")
    try:
        await app.state.services.shutdown(settings.HANDOFF_DRAIN_TIMEOUT_SECONDS)
    except Exception as e:
        logger.error(f"Failed to shut down dispatch services cleanly: {e}")


app_instance = FastAPIApp(lifespan=lifespan)
app = app_instance.get_app()

add_exception_handlers(app, logger)

if __name__ == "__main__":
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())
