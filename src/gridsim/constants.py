from __future__ import annotations

# Game structure
QUARTERS = 4
QUARTER_SECONDS = 900
GAME_SECONDS = QUARTERS * QUARTER_SECONDS
TWO_MINUTE_WARNING_S = 120
TIMEOUTS_PER_HALF = 3
TO_MIN_GAP_S = 14          # no repeat timeout within this many game-clock seconds
TIMEOUT_RUNOFF_SAVED_S = 10
MIN_RUNOFF_AFTER_TO_S = 6

# Field context
MAX_YARDLINE = 99
MIN_YARDLINE = 0
MAX_DOWN = 4
FIRST_AND_TEN_YTG = 10
KICKOFF_TOUCHBACK_YARD = 25
PUNT_TOUCHBACK_YARD = 20
FG_SNAP_YARDS = 17
MAX_FG_DISTANCE = 68

# Model bounds
EP_MIN = -2.5
EP_MAX = 6.95
DRIVE_EP_MAX = 6.95
WP_MIN = 0.0001
WP_MAX = 0.9999
PAT_WPA_CAP = 0.12

# Scoring
TD_POINTS = 6
FG_POINTS = 3
XP_POINTS = 1
TWO_POINTS = 2
POINTS_PER_POSSESSION = 8   # TD + two-point try

# Loop guards
MAX_TICKS = 6000
KNN_DEFAULT_K = 200
