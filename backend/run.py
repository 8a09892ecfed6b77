#!/usr/bin/env python3
# backend/run.py
"""
Development server runner
For local development only - the in-process weekly reset ticker runs in the API
"""
import os
from pathlib import Path
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("ENVIRONMENT", "local")

import uvicorn

if __name__ == "__main__":
    print("🚀 Starting studio booking API (ENVIRONMENT=" + os.environ["ENVIRONMENT"] + ")…")
    print("🌐 Access at: http://localhost:8000")
    print("📚 API Docs: http://localhost:8000/docs")

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
