from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from src.api.routes import router, session_service
from src.config import logger, settings
from src.services.processors.gemini_client import gemini_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Briefly API starting")
    yield
    session_service.store.clear()
    await gemini_client.close()
    logger.info("Briefly API stopped")


# Initialize FastAPI app
app = FastAPI(
    title="Briefly Document Summarizer API",
    version="0.1.0",
    description="Document text extraction and summarization using Gemini",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],  # Lets the browser read the export filename
)

# Include router
app.include_router(router)

@app.get("/")
async def root():
    return {
        "message": "Briefly Document Summarizer API",
        "version": "0.1.0",
        "status": "running"
    }

@app.get("/health")
async def health():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_config=None  # Use our custom logging
    )
