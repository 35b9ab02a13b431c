"""
Work Summary Service — Entry Point.

Single entry point: `python main.py` starts the HTTP API and the hourly
work summary scheduler.
"""

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from worksummary.api.app import main

if __name__ == "__main__":
    main()
