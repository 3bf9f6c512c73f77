from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from routes.user import user_router
from routes.task import task_router
from routes.errors import validation_exception_handler
from db.database import db_client
import uvicorn
import os


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The database connects lazily on first use
    yield
    db_client.close()


# Create the FastAPI application instance
app = FastAPI(
    title="Task Manager API",
    description="API for registering users and managing their personal tasks.",
    version="1.0.0",
    lifespan=lifespan
)

# Allowed browser origins, comma separated
origins = os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Malformed request bodies are client errors
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(user_router)
app.include_router(task_router)

# --- Root Endpoint ---
@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the Task Manager API!"}

# --- Main execution ---
if __name__ == "__main__":
    port = int(os.environ.get("PORT", 3000))
    print(f"--- Starting server on http://localhost:{port} ---")
    uvicorn.run("main:app", host="0.0.0.0", port=port)
