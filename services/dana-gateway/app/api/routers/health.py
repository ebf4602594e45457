from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness check")
async def health():
    return {"status": "ok", "message": "Dana Enterprise API is running"}
