from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import deps
from app.api.routes import questions, research, trends
from app.config import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    yield
    # Shutdown
    await deps.shutdown()


app = FastAPI(
    title="DeepContent Research",
    description="Resilient research jobs with progress streaming and result recovery",
    version="0.1.0",
    lifespan=lifespan,
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
app.include_router(research.router)
app.include_router(trends.router)
app.include_router(questions.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "deepcontent-research"}
