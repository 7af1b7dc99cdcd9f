"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from imagetools.api.routes import router
from imagetools.config import APP_ENV, CORS_HEADERS, CORS_METHODS, CORS_ORIGIN, STATIC_DIR, logger as config_logger

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config_logger.info("Image Tools API started (env=%s, cors_origin=%s)", APP_ENV, CORS_ORIGIN)
    yield
    config_logger.info("Image Tools API shutting down")


app = FastAPI(
    title="Image Tools API",
    description="Convert, resize and compress a single image to PNG, JPG or WebP.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CORS_ORIGIN],
    allow_methods=CORS_METHODS,
    allow_headers=CORS_HEADERS,
)
app.include_router(router)


@app.get("/{full_path:path}", include_in_schema=False)
def serve_client(full_path: str):
    """Serve the prebuilt client; unknown paths fall back to index.html."""
    if full_path.startswith("api/") or full_path == "api":
        raise HTTPException(404, "Not Found")
    root = STATIC_DIR.resolve()
    index = root / "index.html"
    if not index.is_file():
        raise HTTPException(404, "Client build not found")
    candidate = (root / full_path).resolve()
    if full_path and candidate.is_file() and candidate.is_relative_to(root):
        return FileResponse(candidate)
    return FileResponse(index)


if __name__ == "__main__":
    import uvicorn
    from imagetools.config import HOST, PORT
    uvicorn.run("imagetools.main:app", host=HOST, port=PORT, reload=True)
