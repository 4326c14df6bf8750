import os

import uvicorn

from investment_ledger.app import app
from investment_ledger.logger import get_logging_config

DEFAULT_PORT = 4000


def run() -> None:
    port = int(os.getenv("PORT", DEFAULT_PORT))
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=port, log_config=get_logging_config())


if __name__ == "__main__":
    run()
