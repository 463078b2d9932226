# storefront/main.py
import uvicorn

from storefront.api import create_app
from storefront.data.database import engine, init_db
from storefront.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

try:
    init_db()
    logger.info("db.initialized", url=engine.url.render_as_string(hide_password=True))
except Exception:
    logger.exception("db.init_failed")
    raise

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
