"""Sensor layout, region partition and detection presets for in-shoe pressure insoles."""

# ── Sensor layout ────────────────────────────────────────────────────
# Pedar-style exports hold one time column followed by 99 sensor columns
# per foot; the right-foot block starts 99 columns after the left one.

N_SENSORS_PER_FOOT = 99
RIGHT_FOOT_OFFSET = 99

# Source files store Pa; every pressure in the package is kPa.
PA_TO_KPA = 1000.0

# Rows 1-9 of an export are metadata, row 10 is the header.
METADATA_ROWS = 9

FEET = ("left", "right")

# ── Anatomical regions ───────────────────────────────────────────────
# 1-based sensor indices per foot. Sensor 26 is not assigned.

DEFAULT_REGIONS = {
    "heel": list(range(1, 26)),
    "medialMidfoot": [30, 31, 32, 33, 37, 38, 39, 40, 44, 45, 46, 47, 51, 52, 53, 54],
    "lateralMidfoot": [27, 28, 29, 34, 35, 36, 41, 42, 43, 48, 49, 50],
    "forefoot": list(range(55, 83)),
    "toes": [85, 86, 87, 88, 89, 92, 93, 94, 95, 97, 98, 99],
    "hallux": [83, 84, 90, 91, 96],
}

REGION_NAMES = list(DEFAULT_REGIONS.keys())

REGION_LABELS = {
    "heel": "Heel",
    "medialMidfoot": "Medial Midfoot",
    "lateralMidfoot": "Lateral Midfoot",
    "forefoot": "Forefoot",
    "toes": "Toes",
    "hallux": "Hallux",
}

# Regions feeding each event detector.
HEEL_REGIONS = ("heel",)
TOE_REGIONS = ("toes", "hallux")

# ── Gait events ──────────────────────────────────────────────────────

INITIAL_CONTACT = "initial_contact"
TOE_OFF = "toe_off"
EVENT_TYPES = (INITIAL_CONTACT, TOE_OFF)

EVENT_LABELS = {
    INITIAL_CONTACT: "Initial Contact",
    TOE_OFF: "Toe Off",
}

# Thresholds in kPa. "standard" is the canonical default; "legacy" keeps
# the fixed 25/20 kPa values used by the older event-analysis view.
THRESHOLD_PRESETS = {
    "standard": {"initial_contact": 15.0, "toe_off": 10.0},
    "legacy": {"initial_contact": 25.0, "toe_off": 20.0},
}
DEFAULT_THRESHOLD_PRESET = "standard"

# ── Asymmetry classification ─────────────────────────────────────────
# (upper bound exclusive, label); anything above the last bound is "High".

ASYMMETRY_BANDS = [
    (3.0, "Minimal"),
    (6.0, "Low"),
    (10.0, "Moderate"),
]
ASYMMETRY_HIGH = "High"

GAIT_PARAMETERS = ("step_time", "stride_time", "stance_time")

# ── Force / centre-of-pressure export ────────────────────────────────
# Header keywords (lower case) used to locate columns in a force export.

FORCE_COLUMN_KEYWORDS = {
    "time": ("time",),
    "left_force": ("left", "force"),
    "right_force": ("right", "force"),
    "left_cop_x": ("left", "cop", "x"),
    "left_cop_y": ("left", "cop", "y"),
    "right_cop_x": ("right", "cop", "x"),
    "right_cop_y": ("right", "cop", "y"),
}
