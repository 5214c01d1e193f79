#!/usr/bin/env python3
"""
Start the Dynamic Memory Gateway.

This script ensures the repo root is importable and starts the gateway server.
"""
import logging
import os
import sys
from pathlib import Path

root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

if __name__ == "__main__":
    import uvicorn

    from dynamic_memory import config
    from dynamic_memory.gateway.app import create_app

    logging.basicConfig(level=logging.INFO)

    host = os.getenv("GATEWAY_HOST", config.gateway_host())
    port = int(os.getenv("GATEWAY_PORT", str(config.gateway_port())))

    print(f"🚀 Starting Dynamic Memory Gateway on {host}:{port}")
    print(f"📡 Memory view WebSocket: ws://{host}:{port}/ws")
    print(f"🔍 Health check: http://{host}:{port}/health")
    print()

    uvicorn.run(create_app(), host=host, port=port)
