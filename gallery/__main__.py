"""
Run the gallery with uvicorn: `python -m gallery`.
"""

import os

import uvicorn


if __name__ == "__main__":
    uvicorn.run(
        "gallery.app:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
    )
