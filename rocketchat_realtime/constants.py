# =============================================================================
# Rocket.Chat Realtime Client -- Protocol Constants
# =============================================================================
#
# Values match the Rocket.Chat realtime API (DDP over websocket).
# =============================================================================

DDP_VERSION = "1"
DDP_SUPPORTED_VERSIONS = ("1",)

# -- Wire fields ---------------------------------------------------------------

FIELD_MSG = "msg"
FIELD_ID = "id"
FIELD_RESULT = "result"
FIELD_ERROR = "error"

# -- Message types -------------------------------------------------------------

MSG_CONNECT = "connect"
MSG_CONNECTED = "connected"
MSG_FAILED = "failed"
MSG_PING = "ping"
MSG_PONG = "pong"
MSG_METHOD = "method"
MSG_SUB = "sub"
MSG_UNSUB = "unsub"
MSG_READY = "ready"
MSG_CHANGED = "changed"

METHOD_LOGIN = "login"
PASSWORD_ALGORITHM = "sha-256"

# Correlation key for the handshake reply (it never echoes a request id)
HANDSHAKE_KEY = "connect"

# -- Streams -------------------------------------------------------------------

STREAM_ROOM_MESSAGES = "stream-room-messages"
STREAM_NOTIFY_PREFIX = "stream-notify-"
MY_MESSAGES = "__my_messages__"

# -- Session -------------------------------------------------------------------

MAX_CONNECT_RETRIES = 5
DEFAULT_MAX_WORKERS = 10

# -- Timing (seconds) ----------------------------------------------------------

CONNECTION_TIMEOUT = 10.0
CLOSE_TIMEOUT = 5.0

# -- Messages ------------------------------------------------------------------

MAX_MESSAGE_SIZE = 16_777_216  # 16 MB

# -- WebSocket close codes -----------------------------------------------------

WS_CLOSE_NORMAL = 1000
