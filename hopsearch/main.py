from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hopsearch.api.routes import research, search, telemetry
from hopsearch.config import settings
from hopsearch.services import logger as _logging  # noqa: F401  configures loguru sinks

app = FastAPI(
    title="hopsearch",
    description="Multi-hop web search agent with cited answers",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(search.router)
app.include_router(research.router)
app.include_router(telemetry.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "hopsearch"}
