#!/usr/bin/env python3
"""
Intergalactic Bank Entry Point

Starts the FastAPI server with the configured ledger store.
"""

import sys

from galactic_bank.api import run_server
from galactic_bank.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("🚀 Starting Intergalactic Bank...")
    print(f"💾 Ledger store: {config.database_url}")
    print(f"🌐 API available at: http://localhost:{config.api_port}{config.api_prefix}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port, debug=False)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Intergalactic Bank...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
