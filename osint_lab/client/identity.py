import json
import logging
import os
import uuid

logger = logging.getLogger(__name__)

STORAGE_KEY = "visitor_id"


def load_state(path):
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable client state {path}: {e}")
        return {}


def ensure_visitor_id(path):
    """Return the visitor id stored at ``path``, creating it on first use."""
    state = load_state(path)
    visitor_id = state.get(STORAGE_KEY)
    if visitor_id:
        return visitor_id
    visitor_id = str(uuid.uuid4())
    state[STORAGE_KEY] = visitor_id
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(state, f)
    logger.info(f"Created visitor id {visitor_id}")
    return visitor_id
