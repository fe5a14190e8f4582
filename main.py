#!/usr/bin/env python3
"""Entry point for GPS Locater."""
from gps_locater.main import main
import asyncio
import sys

if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
