import uvicorn  # type: ignore

from taskhub.core import config
from taskhub.utils import get_logger

log = get_logger(__name__)

if __name__ == "__main__":
    log.info("Running server on %s:%s", config.HOST, config.PORT)
    if config.BOOTSTRAP_ON_STARTUP:
        log.info("Team permissions will be bootstrapped on startup")
    uvicorn.run("taskhub.main:app", reload=config.RELOAD, host=config.HOST, port=config.PORT)
