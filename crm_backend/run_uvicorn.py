import os

import uvicorn

from crm_backend.logging_config import configure_logging


def main() -> None:
    """
    Uvicorn launcher.
    - Reads PORT from env, defaults to 8000 for local dev.
    - Logging configured before Uvicorn starts.
    - No reload; run `uvicorn crm_backend.main:app --reload` for that.
    """

    # Must run before uvicorn.run() so workers inherit logging.
    configure_logging()

    port = int(os.environ.get("PORT", 8000))

    uvicorn.run(
        "crm_backend.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        log_config=None,  # keep configure_logging() in charge
        use_colors=False,
    )


if __name__ == "__main__":
    main()
