import os

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

PORT = int(os.getenv("PORT", 8888))
HOST = os.getenv("HOST", "0.0.0.0" if IS_PRODUCTION else "localhost")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# Outbound frames buffered per connection before the peer counts as unwritable
SEND_QUEUE_SIZE = int(os.getenv("SEND_QUEUE_SIZE", 64))

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# One peer-to-peer session per room
MAX_ROOM_SIZE = 2
