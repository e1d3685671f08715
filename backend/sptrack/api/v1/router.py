from fastapi import APIRouter

from sptrack.api.v1.endpoints import admin, auth, instructor, instructors, students, subjects, uploads

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(subjects.router)
api_router.include_router(instructor.router)
api_router.include_router(instructors.router)
api_router.include_router(uploads.router)
api_router.include_router(students.router)
api_router.include_router(admin.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Liveness check under the API prefix"""
    return {"status": "healthy", "service": "sptrack-backend"}
