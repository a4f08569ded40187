import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.environ.get('SMARTEXAM_DATA_DIR', os.path.join(APP_DIR, 'data'))
CONFIG_DIR = os.environ.get('SMARTEXAM_CONFIG_DIR', os.path.join(APP_DIR, 'config'))
DB_FILE = os.path.join(CONFIG_DIR, 'smartexam.db')
CONFIG_FILE = os.path.join(CONFIG_DIR, 'settings.yaml')
TRIAL_STATE_FILE = os.path.join(DATA_DIR, 'trial_state.json')

SMARTEXAM_DB = os.environ.get('DATABASE_URL', 'sqlite:///' + DB_FILE)

BUILD_VERSION = '20261019_1200'

# Sync policy
SYNC_RATE_LIMIT_MINUTES = 30
SYNC_MAX_WORKERS = 8

# Trial policy
TRIAL_LENGTH_DAYS = 14
TRIAL_SYNC_INTERVAL_HOURS = 1

# Remote config
REMOTE_CONFIG_MIN_FETCH_INTERVAL = 3600  # seconds

# Remote document layout
COLLECTION_USERS = 'users'
COLLECTION_PURCHASED_PACKS = 'purchased_packs'
COLLECTION_QUESTION_PACKS = 'question_packs'
COLLECTION_QUESTIONS = 'questions'
COLLECTION_TRIALS = 'trials'
COLLECTION_SYNC_TESTS = 'sync_tests'
REMOTE_CONFIG_DOCUMENT = 'app_config/flags'

FIRESTORE_BASE_URL = 'https://firestore.googleapis.com/v1'

DEFAULT_REMOTE_CONFIG = {
    "marketplace_enabled": False,
    "maintenance_mode": False,
    "max_local_papers": 50,
    "caps_validation_strict": False,
}

DEFAULT_SETTINGS = {
    "firestore": {
        "project_id": "",
        "api_key": "",
        "timeout": 10,
    },
    "sync": {
        "rate_limit_minutes": SYNC_RATE_LIMIT_MINUTES,
        "max_workers": SYNC_MAX_WORKERS,
    },
    "trial": {
        "length_days": TRIAL_LENGTH_DAYS,
    },
    "remote_config": dict(DEFAULT_REMOTE_CONFIG),
}

QUESTION_TYPES = [
    'MULTIPLE_CHOICE',
    'TRUE_FALSE',
    'MATCH_COLUMNS',
    'FILL_IN_BLANKS',
    'CHOOSE_FROM_TABLE',
    'ESSAY_SOURCE_BASED',
    'CHOOSE_CORRECT_WORD',
    'IMAGE_LABELING',
    'IMAGE_BASED',
]

# CAPS-aligned cognitive levels, lowest to highest
COGNITIVE_LEVELS = [
    'RECALL',
    'UNDERSTANDING',
    'APPLICATION',
    'EVALUATION',
]
