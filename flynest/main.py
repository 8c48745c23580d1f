import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from flynest.config import settings
from flynest.database import init_models
from flynest.bookings import router as bookings_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENVIRONMENT == "development":
        # Local runs create the schema on the fly (the http backend still keeps notice state
        # here); deployed databases are migrated separately
        await init_models()
    logger.info(f"{settings.PROJECT_NAME} started ({settings.BOOKING_STORE_BACKEND} booking store)")
    yield

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Flynest booking lifecycle and reconciliation API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # React dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(
    bookings_router,
    prefix=f"{settings.API_V1_STR}/bookings",
    tags=["Bookings"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Flynest Booking Service API",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
