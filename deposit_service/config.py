import os
from pathlib import Path

DATA_FILE = os.getenv("DATA_FILE", str(Path(__file__).resolve().parent / "data.json"))
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
ALLOW_ORIGINS = os.getenv("ALLOW_ORIGINS", "*")
