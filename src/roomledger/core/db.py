"""Database configuration for Tortoise-ORM and aerich."""

from roomledger.config import settings

MODEL_MODULES = ["roomledger.core.models"]

TORTOISE_ORM = {
    "connections": {"default": settings.DATABASE_URL},
    "apps": {
        "models": {
            "models": [*MODEL_MODULES, "aerich.models"],
            "default_connection": "default",
        },
    },
}
