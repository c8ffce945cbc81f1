from __future__ import annotations

import logging

from fastapi import FastAPI

from emprende.config import get_settings
from emprende.handlers import catalog_handler, images_handler

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Costa Rica Emprende API")

app.include_router(images_handler.router)
app.include_router(catalog_handler.router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
