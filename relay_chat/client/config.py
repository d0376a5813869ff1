"""Client configuration values."""
from pathlib import Path

DEFAULT_SERVER_URL = "ws://127.0.0.1:3000/ws"
STORAGE_FILE = Path.home() / ".relay_chat_client.json"
TYPING_TIMEOUT_SECONDS = 1.0
