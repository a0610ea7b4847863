import os
from dotenv import load_dotenv
from .base import BaseConfig, _env_bool

load_dotenv()

class LocalConfig(BaseConfig):
    PG_HOST = os.getenv("PG_HOST", "localhost")
    PG_PORT = int(os.getenv("PG_PORT", "5432"))
    PG_USER = os.getenv("PG_USER", "postgres")
    PG_PASS = os.getenv("PG_PASS", "")
    PG_DB   = os.getenv("PG_DB", "linkreach")

    GOOGLE_AUDIENCE = os.getenv("GOOGLE_AUDIENCE") #type: ignore
    SERVER_URL = os.getenv("SERVER_URL", "http://127.0.0.1:8000")
    DEBUG_AUTH = _env_bool("DEBUG_AUTH", "true")
    OFFLINE_MODE = _env_bool("OFFLINE_MODE", "true")

    TORTOISE_ORM = {
        "connections": {
            "default": f"postgres://{PG_USER}:{PG_PASS}@{PG_HOST}:{PG_PORT}/{PG_DB}"
        },
        "apps": {
            "models": {
                "models": ["linkreach.models", "aerich.models"],
                "default_connection": "default",
            }
        },
        "use_tz": True,
        "timezone": "UTC",
    }


'''
docker run -d \
  --name linkreach-postgres \
  -e POSTGRES_USER=postgres \
  -e POSTGRES_PASSWORD=password \
  -e POSTGRES_DB=linkreach \
  -p 5432:5432 \
  postgres:16
'''
