"""Run the API with uvicorn: `python -m civic_api`."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "civic_api.main:build_default_app",
        factory=True,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
    )


if __name__ == "__main__":
    main()
