#!/usr/bin/env python3
"""
Vital-Signs Estimation Engine — HTTP Entry Point
=================================================
Serves the scan-session API (`api.app.create_app`) through Uvicorn:

    python main.py --host 127.0.0.1 --port 8080

⚠️  Heart rate, irregularity and SpO2 come from consumer sensors and are
    estimates only; they are not fit for diagnosis or treatment.
"""

import argparse

import uvicorn

from api.app import create_app
from config import LOG_LEVEL


def main() -> None:
    parser = argparse.ArgumentParser(description="Vital-signs estimation API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    uvicorn.run(
        create_app(),
        host=args.host,
        port=args.port,
        reload=False,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
