import logging

import uvicorn

import config
from utils.logging_config import setup_logging

# Initialize centralized logging configuration
setup_logging()

# SQL statements would drown the application log
for logger_name in ['aiosqlite', 'sqlalchemy.engine', 'sqlalchemy.pool']:
    logging.getLogger(logger_name).setLevel(logging.WARNING)

if __name__ == '__main__':
    logging.info(f"[run.py] Starting storefront on {config.WEBAPP_HOST}:{config.WEBAPP_PORT}")
    uvicorn.run("app:app", host=config.WEBAPP_HOST, port=config.WEBAPP_PORT, log_config=None)
