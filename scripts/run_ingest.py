"""
Script to run one ingestion invocation for all configured sources.

Exits non-zero when configuration is invalid or any task fails, so cron
(or any external scheduler) can alert on it.
"""

import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from ingestion.job import main


if __name__ == "__main__":
    sys.exit(main())
