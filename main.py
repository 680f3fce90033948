from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from auth import ensure_admin
from config import get_settings
from database import init_db
from utils.log_config import configure_logging
from routes.auth import router as auth_router
from routes.admin import router as admin_router
from routes.cdn import router as cdn_router
from routes.posts import router as posts_router
from routes.comments import router as comments_router
from routes.follows import router as follows_router

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

app = FastAPI(title="PixShare API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported as 400, like every other input error."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request.") if errors else "Invalid request."
    return JSONResponse(status_code=400, content={"detail": message})


# Initialize database
init_db()
if settings.BOOTSTRAP_ADMIN_EMAIL and settings.BOOTSTRAP_ADMIN_PASSWORD:
    ensure_admin(settings.BOOTSTRAP_ADMIN_EMAIL, settings.BOOTSTRAP_ADMIN_PASSWORD)

# Include routers
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(cdn_router)
app.include_router(posts_router)
app.include_router(comments_router)
app.include_router(follows_router)


@app.get("/")
def read_root():
    return {"message": f"{settings.SERVICE_NAME} is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=5000, reload=settings.ENV == "dev")
