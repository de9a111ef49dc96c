#!/usr/bin/env python3
"""
Development server launcher for the Nomie API.

For production, run `uvicorn nomie.api.main:app` behind a proper ASGI deployment.
Set GROQ_API_KEY (or the key named by the config) before starting.
"""

import logging
import uvicorn
from pathlib import Path

from nomie.config import resolve_config_path

project_root = Path(__file__).parent
src_path = project_root / "src"

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("Starting Nomie API Development Server")
    print(f"Config: {resolve_config_path()}")
    print("Server will be available at: http://localhost:8000")
    print("Recipe endpoint: POST http://localhost:8000/api/llm")
    print("API documentation at: http://localhost:8000/docs")
    print("\n" + "="*50 + "\n")

    uvicorn.run(
        "nomie.api.main:app",
        host="0.0.0.0",  # Accept connections from any IP
        port=8000,
        reload=True,     # Auto-reload on code changes (development only)
        reload_dirs=[str(src_path)],  # Only watch src directory
        log_level="info"
    )
