"""Main FastAPI application"""

from config.settings import HOST, PORT
from context.lifespan import lifespan
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from middleware.cors import handle_preflight
from middleware.errors import register_exception_handlers
from middleware.logging import log_requests
from routes import api_router

app = FastAPI(
    title="Hydroponic Monitor API",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Pre-flight requests are answered before any handler runs
app.middleware("http")(handle_preflight)

# Request logging middleware
app.middleware("http")(log_requests)

register_exception_handlers(app)

# Include routers
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)
