import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI

from lumina.api.routes import router
from lumina.corpus.singleton import get_corpus
from lumina.corpus.startup import init_corpus_for_app

load_dotenv()

app = FastAPI(title="lumina", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=os.environ.get("LUMINA_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    init_corpus_for_app()


@app.get("/info")
async def info() -> dict[str, object]:
    return {"name": "lumina", "version": "0.1.0", "languages": list(get_corpus().languages())}
