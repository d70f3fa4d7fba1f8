#!/usr/bin/env python
"""Script to run the TodoList Pro backend server."""
import os
import sys
from pathlib import Path

# Run from the project root so relative SQLite paths resolve there
project_dir = Path(__file__).resolve().parent
sys.path.insert(0, str(project_dir))
os.chdir(project_dir)

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "todolist.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
