# --- Boot ---

STEP_INTERVAL_MS = 600
CHAT_DELAY_MS = 1500  # pause between boot completion and the chat view
BOOT_PENDING_TIMESTAMP = "--:--:--"


# --- Polling ---

VITALS_INTERVAL_MS = 2000


# --- Push channel ---

OBSERVER_EVENT = "observer-event"
OBSERVER_PROVIDER = "Observer"


# --- Cues ---

CUE_STEP = "beep"
CUE_STARTUP = "startup"
CUE_OBSERVER = "beep"


# --- Backend ---

REQUEST_TIMEOUT = 60.0
DELETE_CONFIRM_PROMPT = "Purge this memory sector?"
