"""Run the service with ``python -m admission_gate``."""

import uvicorn

from admission_gate.core.config import settings


def main() -> None:
    # One worker: each process keeps its own independent budgets.
    uvicorn.run(
        "admission_gate.main:app",
        host="0.0.0.0",
        port=8000,
        workers=1,
        log_config=None,
        log_level="debug" if settings.app.debug else "info",
    )


if __name__ == "__main__":
    main()
