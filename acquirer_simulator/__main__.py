import logging

import uvicorn

from .app import create_app
from .config import load_settings

logger = logging.getLogger("acquirer")


def main() -> None:
    settings = load_settings()
    app = create_app(settings)
    logger.info(f"fake-acquirer listening on 0.0.0.0:{settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
