# FastAPI application for project chat.
# Run with: python -m app.main  (reads PROJECT_CHAT_* from the environment / .env)

import logging
import os

from fastapi import FastAPI

import project_chat as pc
from app.routes import chat_router

logger = logging.getLogger(__name__)


def create_app(handler: pc.agent.ChatHandler | None = None) -> FastAPI:
    """
    Build the app. Without a handler, one is created from PROJECT_CHAT_* settings,
    which indexes the configured project at startup.
    """
    if handler is None:
        pc.common.setup()
        handler = pc.agent.create_chat_handler(pc.common.ChatSettings.from_env())

    app = FastAPI(
        title="Project Chat",
        version="0.1.0",
        description="Streaming, tool-augmented chat over a project's docs and source code.",
    )
    app.state.chat_handler = handler

    @app.get("/", summary="Health Check", tags=["Status"])
    def read_root():
        return {"status": "ok"}

    app.include_router(chat_router)
    return app


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    uvicorn.run(create_app(), host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
