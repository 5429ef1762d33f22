"""FastAPI application."""

import argparse
from typing import Dict

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from charsheet.configs import settings  # noqa: E402
from charsheet.controllers.sheet_controllers import sheet_router  # noqa: E402
from charsheet.logger_config import get_logger  # noqa: E402

logger = get_logger(__name__)

logger.info("Starting FastAPI application...")
app = FastAPI(
    title="Character Sheet API",
    root_path=settings.ROOT_PATH_BACKEND,
    description="Rolling character sheet kept inside the chat history",
)
app.include_router(sheet_router)


@app.get("/", response_description="Api healthcheck")  # type: ignore[misc]
async def index() -> Dict[str, str]:
    """Define a route for handling HTTP GET requests to the root URL ("/")."""
    return {"0": "0"}


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser()
    parser.add_argument("--host", required=True, help="Application host.")
    parser.add_argument("--port", required=True, help="Application port.")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development purposes.",
    )
    args = parser.parse_args()

    uvicorn.run("app:app", host=args.host, port=int(args.port), reload=args.reload)
