import uvicorn

from account_security.api.app import create_app
from account_security.api.utils.logging import setup_logging
from config import ApplicationConfig

setup_logging(ApplicationConfig.LOG_LEVEL)
app = create_app(ApplicationConfig)

if __name__ == "__main__":
    uvicorn.run(
        "api:app",
        host=ApplicationConfig.API_HOST,
        port=ApplicationConfig.API_PORT,
        reload=ApplicationConfig.ENVIRONMENT != "production",
        log_level=ApplicationConfig.LOG_LEVEL.lower(),
    )
