"""Server configuration values."""
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
LOG_FILE = BASE_DIR / "server.log"
HOST = "0.0.0.0"
PORT = 3000
CORS_ORIGINS = ["*"]
CORS_METHODS = ["GET", "POST"]
WS_PATH = "/ws"
# Relayed payloads are forwarded verbatim unless this is switched on.
VALIDATE_PAYLOADS = False
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3
