"""Shared constants for track quality ranking and session events."""
from __future__ import annotations

LOGGER_NAME = "soul_session"

DSD_FORMATS = ("DSF", "DFF")
DSD_PREFIX = "DSD"
LOSSLESS_FORMATS = ("FLAC", "ALAC", "WAV", "AIFF", "APE", "WV")

DSD_BASE_SCORE = 1000
LOSSLESS_BASE_SCORE = 800
UNKNOWN_BASE_SCORE = 100
LOSSY_BASE_SCORES = {
    "OPUS": 400,
    "AAC": 350,
    "M4A": 350,
    "OGG": 300,
    "MP3": 250,
    "WMA": 200,
}

DEFAULT_SAMPLE_RATE = 44100
MAX_SAMPLE_RATE_BONUS_HZ = 192000
SAMPLE_RATE_BONUS_CAP = 100.0
MAX_BITRATE_BONUS_KBPS = 320
BITRATE_BONUS_CAP = 50.0

GROUP_KEY_SEPARATOR = "::"

AUDIO_EXTENSIONS = (
    ".aac",
    ".aif",
    ".aiff",
    ".alac",
    ".ape",
    ".dff",
    ".dsf",
    ".flac",
    ".m4a",
    ".mp3",
    ".ogg",
    ".opus",
    ".wav",
    ".wma",
    ".wv",
)

EVENT_STATE_CHANGE = "stateChange"
EVENT_TRACK_CHANGE = "trackChange"
EVENT_POSITION_UPDATE = "positionUpdate"
EVENT_VOLUME_CHANGE = "volumeChange"
EVENT_SHUFFLE_CHANGE = "shuffleChange"
EVENT_REPEAT_CHANGE = "repeatChange"
EVENT_MUTE_CHANGE = "muteChange"
EVENT_QUEUE_CHANGE = "queueChange"
EVENT_ERROR = "error"

SESSION_EVENTS = (
    EVENT_STATE_CHANGE,
    EVENT_TRACK_CHANGE,
    EVENT_POSITION_UPDATE,
    EVENT_VOLUME_CHANGE,
    EVENT_SHUFFLE_CHANGE,
    EVENT_REPEAT_CHANGE,
    EVENT_MUTE_CHANGE,
    EVENT_QUEUE_CHANGE,
    EVENT_ERROR,
)

DEFAULT_TRACK_CHANGE_TIMEOUT_MS = 100
DEFAULT_VOLUME = 80
DEFAULT_HISTORY_SIZE = 50
DEFAULT_PREVIOUS_RESTART_SECONDS = 3.0
