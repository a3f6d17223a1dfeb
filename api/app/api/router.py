from fastapi import APIRouter

from app.api.routes import auth, health, jobs, news, notes, study_materials, uploads

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(news.router, prefix="/news", tags=["news"])
api_router.include_router(notes.router, prefix="/notes", tags=["notes"])
api_router.include_router(study_materials.router, prefix="/study-materials", tags=["study-materials"])
api_router.include_router(uploads.router, prefix="/upload", tags=["uploads"])
