#!/usr/bin/env python3
"""
Server startup wrapper for accessboard.
"""
import os
import sys

# Add repo root to path
repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, repo_root)

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    print(f"[accessboard] Serving on http://{host}:{port}")
    uvicorn.run(
        "accessboard.main:app",
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
