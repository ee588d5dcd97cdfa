"""
LeafScan-Hybrid - Shared Constants
Label set, tensor geometry and fallback tables used across the engine
"""

# =============================================================================
# Disease Labels
# Position in the list is the classifier's class index.
# =============================================================================
DISEASE_LABELS = (
    'Healthy',
    'Bacterial Spot',
    'Early Blight',
    'Late Blight',
    'Leaf Mold',
)

UNKNOWN_LABEL = 'Unknown'

# =============================================================================
# Image Processing Constants
# =============================================================================
IMAGE_SIZE = 224
IMAGE_CHANNELS = 3
INPUT_SHAPE = (1, IMAGE_SIZE, IMAGE_SIZE, IMAGE_CHANNELS)
SEGMENTATION_SIZE = IMAGE_SIZE * IMAGE_SIZE

# =============================================================================
# Model Configuration
# =============================================================================
MODEL_CONFIG = {
    'classifier_model': 'plant_disease_classifier.tflite',
    'segmentation_model': 'plant_disease_segmentation.tflite',
    'num_threads': 2,
}

# =============================================================================
# Severity
# =============================================================================
DISEASED_PIXEL_THRESHOLD = 0.5

SEVERITY_LEVELS = ['low', 'moderate', 'high', 'critical']

# Exclusive upper bound in percent; anything at or above the last is critical
SEVERITY_THRESHOLDS = {
    'low': 25.0,
    'moderate': 50.0,
    'high': 75.0,
}

# =============================================================================
# Content Fingerprinting
# =============================================================================
FINGERPRINT_LENGTH = 12
FINGERPRINT_SAMPLES = 32
FINGERPRINT_GRID = 4
QUANTIZATION_STEP = 32
DEFAULT_FINGERPRINT = 'default_plant_leaf'

# (label, exclusive upper byte length)
SIZE_BUCKETS = (
    ('small', 100_000),
    ('medium', 500_000),
    ('large', 2_000_000),
)
LARGEST_SIZE_BUCKET = 'xlarge'

# =============================================================================
# Deterministic Fallback Tables
# =============================================================================
FALLBACK_WEIGHTS = (
    ('Healthy', 0.35),
    ('Bacterial Spot', 0.25),
    ('Early Blight', 0.20),
    ('Late Blight', 0.15),
    ('Leaf Mold', 0.05),
)

# label -> (base confidence, base severity)
FALLBACK_BASELINES = {
    'Healthy': (0.88, 2.0),
    'Bacterial Spot': (0.78, 42.0),
    'Early Blight': (0.75, 38.0),
    'Late Blight': (0.82, 67.0),
    'Leaf Mold': (0.70, 29.0),
}
FALLBACK_DEFAULT_BASELINE = (0.80, 35.0)

CONFIDENCE_JITTER = 0.08
SEVERITY_JITTER = 10.0
FALLBACK_CONFIDENCE_RANGE = (0.65, 0.95)
FALLBACK_SEVERITY_RANGE = (0.0, 85.0)

# =============================================================================
# Result Sources
# =============================================================================
SOURCE_MODEL = 'model'
SOURCE_FALLBACK = 'fallback'
SOURCE_DEBUG = 'debug'
SOURCE_UNKNOWN = 'unknown'

# =============================================================================
# Debug Predictor Output
# =============================================================================
DEBUG_RESULT = {
    'disease': 'Debug: Real Models Working!',
    'confidence': 0.88,
    'severity': 35.0,
}

# =============================================================================
# Error Messages
# =============================================================================
MESSAGES = {
    'NOT_READY': 'Models not loaded. Call load_models() first.',
    'DISPOSED': 'Service has been disposed',
    'INVALID_IMAGE': 'Invalid or corrupt image file',
    'MODEL_ERROR': 'Error during model inference',
}
