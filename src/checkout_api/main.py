from __future__ import annotations

import uvicorn

from checkout_api.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "checkout_api.asgi:create_asgi_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
