"""Run the HTTP endpoint: ``python -m meal_processor``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "meal_processor.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").lower(),
    )


if __name__ == "__main__":
    main()
