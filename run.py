#!/usr/bin/env python3
"""
EMI Engine Entry Point

Starts the FastAPI server together with the daily overdue sweep timer.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from emi_engine.api import run_server
from emi_engine.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting EMI Engine...")
    print("All amounts use Decimal precision, rounded half-up to 2 places")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug="--debug" in sys.argv)
    except KeyboardInterrupt:
        print("\nShutting down EMI Engine...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
