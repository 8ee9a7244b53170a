from __future__ import annotations

import uvicorn

from burbar_admin.config import load_config
from burbar_admin.logging import configure_logging
from services.chat_api import create_app


def main() -> None:
    config = load_config()
    configure_logging(config)
    api_cfg = config.get("api", {}) or {}
    uvicorn.run(
        create_app(),
        host=str(api_cfg.get("host", "127.0.0.1")),
        port=int(api_cfg.get("port", 8000)),
        log_config=None,
    )


if __name__ == "__main__":
    main()
