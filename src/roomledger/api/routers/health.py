from fastapi import APIRouter
from tortoise import connections

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/health/db")
async def health_db():
    await connections.get("default").execute_query("SELECT 1")
    return {"status": "ok", "database": "connected"}
