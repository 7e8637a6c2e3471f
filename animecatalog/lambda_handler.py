"""AWS Lambda entry points.

``handler`` serves the API: Mangum translates API Gateway HTTP API (v2)
events into ASGI. Lifespan is off, so tables are not created on cold
start.

``scheduled_handler`` runs one catalog sync (creating tables if needed)
and is meant for an EventBridge schedule.
"""

import asyncio

from mangum import Mangum

from animecatalog.logging.audit import setup_logging
from animecatalog.main import app
from animecatalog.sync.anilist import run_sync

handler = Mangum(app, lifespan="off")


def scheduled_handler(event, context):
    setup_logging()
    stored = asyncio.run(run_sync())
    return {"stored": stored}
