"""
Entry point for the Track Battle web API.

    python web_main.py      ← JSON API on :8000

Reads config.yaml from the working directory.
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "trackbattle.web.app:build_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
