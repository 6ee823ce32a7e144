# path: route-replay-api/app/main.py

import logging

from fastapi import FastAPI

from app import config as C
from app.api.deps import get_registry
from app.api.routes.routes import router as routes_router

logging.basicConfig(level=C.LOG_LEVEL, format=C.LOG_FORMAT)

app = FastAPI(title="route-replay-api", version=C.SERVICE_VERSION)

app.include_router(routes_router)


@app.on_event("shutdown")
async def on_shutdown():
    get_registry().stop_all()
