import logging

from fastapi import FastAPI

from .config import load_settings
from .routers import category

logging.basicConfig(
    level=getattr(logging, load_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Category Merchandising API", version="1.0.0")


app.include_router(category.router, tags=["category"])


@app.get("/")
def root() -> dict:
    """Where to find listings and which sort key turns on ranking."""
    settings = load_settings()
    return {
        "listing": "/category/{category_id}",
        "personalized_sort": settings.personalized_sort_key,
        "stores": [store.code for store in settings.stores],
    }


@app.get("/healthz")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
