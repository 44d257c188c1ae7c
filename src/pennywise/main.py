import os

import uvicorn

from pennywise.core.settings import get_env_int
from pennywise.logger import get_logging_config


def main() -> None:
    uvicorn.run(
        "pennywise.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=get_env_int("PORT", 8000, min_value=1),
        log_config=get_logging_config(),
    )


if __name__ == "__main__":
    main()
