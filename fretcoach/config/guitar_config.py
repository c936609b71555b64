# Standard guitar tuning, low E (string 6) to high E (string 1)
STANDARD_TUNING = [
    ('E', 2),  # String 6 - Low E
    ('A', 2),  # String 5
    ('D', 3),  # String 4
    ('G', 3),  # String 3
    ('B', 3),  # String 2
    ('E', 4),  # String 1 - High E
]

NUM_STRINGS = 6
ZONE_FRETS = 4  # Zone spans nut .. 4th fret
MUTED_FRET = -1
OPEN_FRET = 0

# Fingertips we score (finger number -> joint name)
FINGER_JOINTS = {
    1: 'index_tip',
    2: 'middle_tip',
    3: 'ring_tip',
    4: 'little_tip',
}
FINGER_NAMES = {1: 'Index', 2: 'Middle', 3: 'Ring', 4: 'Pinky'}

# Zone tracking
SMOOTHING_WINDOW = 3  # Samples averaged per tracked quantity
DETECTION_FPS = 15  # Max processed frames per second

# Default zone published when idle (normalized, top-left origin)
DEFAULT_NUT_Y = 0.2
DEFAULT_FRET4_Y = 0.8
DEFAULT_LEFT_X = 0.3
DEFAULT_RIGHT_X = 0.7

# Neck rectangle candidate filter (aspect = height / width)
NECK_ASPECT_BANDS = ((0.8, 3.5), (0.3, 1.2))  # Covers both phone orientations
NECK_MIN_AREA = 0.05  # Fraction of frame
NECK_MIN_SIDE = 0.15  # Width or height must exceed this

# Fret/string line classification (aspect = width / height)
STRING_LINE_MIN_ASPECT = 3.0
STRING_LINE_MIN_WIDTH = 0.15
FRET_LINE_MAX_ASPECT = 0.33
FRET_LINE_MIN_HEIGHT = 0.15
MAX_CONTOURS = 50  # Contours inspected per frame
MAX_STRING_LINES = 6
MAX_FRET_LINES = 5

# Placement scoring
JOINT_CONFIDENCE_THRESHOLD = 0.3
PLACEMENT_TOLERANCE = 0.08  # Normalized-plane distance

# Front camera preview is mirrored
MIRRORED_PREVIEW = True

# Default perspective calibration corners (x, y)
DEFAULT_CALIBRATION = {
    'top_left': (0.15, 0.25),
    'top_right': (0.75, 0.25),
    'bottom_right': (0.75, 0.75),
    'bottom_left': (0.15, 0.75),
}

# OpenCV detector adapters
RECT_CANNY_LOW = 30
RECT_CANNY_HIGH = 90
RECT_CANNY_LOW_2 = 50
RECT_CANNY_HIGH_2 = 150
RECT_MAX_OBSERVATIONS = 15
CONTOUR_CANNY_LOW = 50
CONTOUR_CANNY_HIGH = 150

# MediaPipe hand landmarker
HAND_LANDMARKER_MODEL_PATH = 'models/hand_landmarker.task'
HAND_MIN_DETECTION_CONFIDENCE = 0.5
HAND_MIN_TRACKING_CONFIDENCE = 0.5
# MediaPipe landmark indices for the fingertips
HAND_LANDMARK_INDICES = {
    'thumb_tip': 4,
    'index_tip': 8,
    'middle_tip': 12,
    'ring_tip': 16,
    'little_tip': 20,
}

# Overlay colors (BGR)
COLOR_CORRECT = (0, 200, 0)
COLOR_INCORRECT = (0, 0, 255)
COLOR_MISSING = (0, 165, 255)
COLOR_UNSCORED = (128, 128, 128)
COLOR_TARGET = (0, 255, 255)
COLOR_ZONE = (0, 255, 255)
COLOR_LINES = (255, 255, 0)
