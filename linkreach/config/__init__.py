import os
from dotenv import load_dotenv

# Always prefer repo .env over pre-set environment variables to avoid stale ENV/PG values.
load_dotenv(override=True)

def _get_env() -> str:
    return os.getenv("ENV", "local").strip().lower()


_env = _get_env()

if _env == "cloud":
    from .cloud import CloudConfig as Config
else:
    from .local import LocalConfig as Config

# aerich entry point: tortoise_orm = "linkreach.config.TORTOISE_ORM"
TORTOISE_ORM = Config.TORTOISE_ORM

__all__ = ["Config", "TORTOISE_ORM"]
