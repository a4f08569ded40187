import logging
import re
import threading
import json
import os
import tempfile
from datetime import datetime, timezone

# Global lock for all JSON writes in this process
_json_write_lock = threading.Lock()

# Custom logging formatter to support colors
class ColoredFormatter(logging.Formatter):
    # Define color codes
    COLORS = {
        'DEBUG': '\033[94m',   # Blue
        'INFO': '\033[92m',    # Green
        'WARNING': '\033[93m', # Yellow
        'ERROR': '\033[91m',   # Red
        'CRITICAL': '\033[95m' # Magenta
    }
    RESET = '\033[0m'  # Reset color

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        return super().format(record)

# Filter to remove date from http access logs
class FilterRemoveDateFromWerkzeugLogs(logging.Filter):
    # '192.168.0.102 - - [30/Jun/2024 01:14:03] "%s" %s %s' -> '192.168.0.102 - "%s" %s %s'
    pattern: re.Pattern = re.compile(r' - - \[.+?] "')

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self.pattern.sub(' - "', record.msg)
        return True


def get_or_create_secret_key(config_dir=None):
    """
    Load the persistent Flask secret key, generating it on first run.
    Stored in CONFIG_DIR/.secret_key, readable by the owner only.
    """
    import secrets
    from constants import CONFIG_DIR

    logger = logging.getLogger('main')
    secret_key_file = os.path.join(config_dir or CONFIG_DIR, '.secret_key')

    if os.path.exists(secret_key_file):
        try:
            with open(secret_key_file, 'r') as f:
                key = f.read().strip()
            if len(key) == 64:
                return key
            logger.warning("Invalid secret key found, generating new one")
        except OSError as e:
            logger.error(f"Error reading secret key: {e}")

    key = secrets.token_hex(32)
    try:
        os.makedirs(os.path.dirname(secret_key_file), exist_ok=True)
        with open(secret_key_file, 'w') as f:
            f.write(key)
        os.chmod(secret_key_file, 0o600)
        logger.info("Generated new secret key and saved to disk")
    except OSError as e:
        logger.error(f"Error saving secret key: {e}")
        logger.warning("Using non-persistent secret key")
    return key


def sanitize_sensitive_data(data, sensitive_keys=None):
    """
    Remove or mask sensitive data before logging.

    Args:
        data: Dictionary, string, or other data to sanitize
        sensitive_keys: List of keys to mask (default: common sensitive keys)

    Returns:
        Sanitized version of the data
    """
    if sensitive_keys is None:
        sensitive_keys = [
            'password', 'secret', 'api_key', 'apikey',
            'token', 'access_token', 'refresh_token',
            'authorization', 'transaction',
        ]

    if isinstance(data, dict):
        sanitized = {}
        for k, v in data.items():
            key_lower = k.lower()
            is_sensitive = any(sens in key_lower for sens in sensitive_keys)

            if is_sensitive:
                # Show only first 2 and last 2 chars if string, else mask completely
                if isinstance(v, str) and len(v) > 4:
                    sanitized[k] = f"{v[:2]}***{v[-2:]}"
                else:
                    sanitized[k] = "***"
            elif isinstance(v, dict):
                sanitized[k] = sanitize_sensitive_data(v, sensitive_keys)
            elif isinstance(v, list):
                sanitized[k] = [sanitize_sensitive_data(item, sensitive_keys) if isinstance(item, (dict, list)) else item for item in v]
            else:
                sanitized[k] = v
        return sanitized

    elif isinstance(data, list):
        return [sanitize_sensitive_data(item, sensitive_keys) if isinstance(item, (dict, list)) else item for item in data]

    return data


def safe_write_json(path, data, **dump_kwargs):
    with _json_write_lock:
        dirpath = os.path.dirname(path) or "."
        os.makedirs(dirpath, exist_ok=True)
        options = {'ensure_ascii': False, 'indent': 2}
        options.update(dump_kwargs)

        # Create temporary file in same directory
        with tempfile.NamedTemporaryFile("w", dir=dirpath, delete=False, encoding="utf-8") as tmp:
            tmp_path = tmp.name
            json.dump(data, tmp, **options)
            tmp.flush()
            os.fsync(tmp.fileno())
        # Atomically replace target file
        os.replace(tmp_path, path)


def now_utc():
    """Returns current datetime in UTC (aware)"""
    return datetime.now(timezone.utc)


def now_ms():
    """Returns current time as epoch milliseconds"""
    return int(now_utc().timestamp() * 1000)


def ensure_utc(dt):
    """
    Ensure a datetime object is aware and in UTC.
    Handles ISO strings, epoch milliseconds, None, and naive datetimes.
    """
    if dt is None:
        return None

    if isinstance(dt, (int, float)) and not isinstance(dt, bool):
        return datetime.fromtimestamp(dt / 1000, tz=timezone.utc)

    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt.replace('Z', '+00:00'))
        except (ValueError, TypeError, AttributeError):
            return None

    if not hasattr(dt, 'tzinfo'):
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def format_price(price_cents):
    """Rand price string as shown in the marketplace"""
    return f"R{(price_cents or 0) / 100:.2f}"
