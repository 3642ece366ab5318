import logging

from app.core.config import get_settings
from app.core.logging_config import configure_logging
from app.main import create_app

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# ASGI entry point: `uvicorn api.index:app`
app = create_app(settings)

logger.info("api/index.py initialized")


if __name__ == "__main__":
    import uvicorn

    logger.info("starting... port: %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
